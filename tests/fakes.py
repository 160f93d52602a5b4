"""In-memory stand-ins for the Elasticsearch and Redis clients.

They implement only the client calls the catalog core makes, with the
same call signatures and response shapes. Setting ``fail = True`` makes
every call raise the client library's own connection error; naming a call
in ``fail_once`` fails only its next invocation. The ``before_*`` hooks run
a coroutine once, just before the named call touches the store.
"""

import re
from collections.abc import Awaitable, Callable
from typing import Any

from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import ConflictError
from elasticsearch import ConnectionError as SearchConnectionError
from redis.exceptions import ConnectionError as CacheConnectionError

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


def tokenize(text: str | None) -> list[str]:
    """Lowercase alphanumeric tokens, like the standard analyzer."""
    return TOKEN_PATTERN.findall((text or "").lower())


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings."""
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def auto_fuzziness(term: str) -> int:
    """Edits allowed by ``fuzziness: AUTO`` for a term."""
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


Hook = Callable[[], Awaitable[Any]]


def version_conflict(doc_id: str, stored: int, offered: int) -> ConflictError:
    """The error the client raises when an external version is stale."""
    meta = ApiResponseMeta(
        status=409,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    reason = (
        f"[{doc_id}]: version conflict, current version [{stored}] "
        f"is higher than the one provided [{offered}]"
    )
    body = {"error": {"type": "version_conflict_engine_exception", "reason": reason}}
    return ConflictError(message="version_conflict_engine_exception", meta=meta, body=body)


# ============================================================================
# Elasticsearch
# ============================================================================


class FakeIndices:
    """The ``client.indices`` namespace."""

    def __init__(self, client: "FakeElasticsearch") -> None:
        self.client = client

    async def exists(self, index: str) -> bool:
        self.client._check("indices.exists")
        return index in self.client.mappings

    async def create(self, index: str, mappings: dict | None = None) -> dict:
        self.client._check("indices.create")
        self.client.mappings[index] = mappings or {}
        self.client.documents.setdefault(index, {})
        return {"acknowledged": True, "index": index}


class FakeElasticsearch:
    """Async Elasticsearch client backed by dicts."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.versions: dict[tuple[str, str], int] = {}
        self.mappings: dict[str, dict] = {}
        self.indices = FakeIndices(self)
        self.fail = False
        self.fail_once: set[str] = set()
        self.before_bulk: Hook | None = None
        self.rejected_ids: set[str] = set()
        self.calls: list[str] = []

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.fail:
            raise SearchConnectionError("search index unreachable")
        if call in self.fail_once:
            self.fail_once.discard(call)
            raise SearchConnectionError("search index unreachable")

    def _stale(self, index: str, doc_id: str, version: int | None) -> int | None:
        """Stored version if ``version`` is older than it (external_gte)."""
        stored = self.versions.get((index, doc_id))
        if version is None or stored is None or version >= stored:
            return None
        return stored

    def _store(self, index: str, doc_id: str, source: dict, version: int | None) -> None:
        self.docs(index)[doc_id] = dict(source)
        if version is None:
            self.versions.pop((index, doc_id), None)
        else:
            self.versions[(index, doc_id)] = version

    def docs(self, index: str = "products") -> dict[str, dict[str, Any]]:
        """Documents stored in an index, keyed by document id."""
        return self.documents.setdefault(index, {})

    def version_of(self, doc_id: str, index: str = "products") -> int | None:
        """External version stored for a document."""
        return self.versions.get((index, doc_id))

    def options(self, **kwargs: Any) -> "FakeElasticsearch":
        return self

    async def index(
        self,
        index: str,
        id: str,
        document: dict[str, Any],
        refresh: Any = None,
        version: int | None = None,
        version_type: str | None = None,
    ) -> dict:
        self._check("index")
        stored = self._stale(index, id, version)
        if stored is not None:
            raise version_conflict(id, stored, version)
        created = id not in self.docs(index)
        self._store(index, id, document, version)
        return {"_id": id, "result": "created" if created else "updated"}

    async def delete(self, index: str, id: str, refresh: Any = None) -> dict:
        self._check("delete")
        found = self.docs(index).pop(id, None) is not None
        self.versions.pop((index, id), None)
        return {"_id": id, "result": "deleted" if found else "not_found"}

    async def bulk(self, operations: list[dict[str, Any]], refresh: Any = None) -> dict:
        self._check("bulk")
        if self.before_bulk is not None:
            hook, self.before_bulk = self.before_bulk, None
            await hook()

        items = []
        for action, source in zip(operations[::2], operations[1::2]):
            meta = action["index"]
            doc_id = meta["_id"]
            if doc_id in self.rejected_ids:
                items.append({"index": {"_id": doc_id, "status": 400}})
                continue
            version = meta.get("version")
            if self._stale(meta["_index"], doc_id, version) is not None:
                items.append({"index": {"_id": doc_id, "status": 409}})
                continue
            self._store(meta["_index"], doc_id, source, version)
            items.append({"index": {"_id": doc_id, "status": 201}})
        return {"errors": any(i["index"]["status"] >= 300 for i in items), "items": items}

    async def delete_by_query(self, index: str, query: dict, refresh: Any = None) -> dict:
        self._check("delete_by_query")
        bool_query = query["bool"]
        max_id = bool_query["filter"][0]["range"]["id"]["lte"]
        keep = set(bool_query["must_not"][0]["ids"]["values"])

        doomed = [
            doc_id
            for doc_id, source in self.docs(index).items()
            if source["id"] <= max_id and doc_id not in keep
        ]
        for doc_id in doomed:
            del self.docs(index)[doc_id]
            self.versions.pop((index, doc_id), None)
        return {"deleted": len(doomed)}

    async def count(self, index: str) -> dict:
        self._check("count")
        return {"count": len(self.docs(index))}

    async def search(self, index: str, query: dict, size: int = 10, **kwargs: Any) -> dict:
        self._check("search")
        if "range" in query:
            lower = query["range"]["id"]["gt"]
            hits = [
                {"_id": doc_id, "_score": None, "_source": {"id": source["id"]}}
                for doc_id, source in self.docs(index).items()
                if source["id"] > lower
            ]
            hits.sort(key=lambda hit: hit["_source"]["id"])
            return {"hits": {"total": {"value": len(hits)}, "hits": hits[:size]}}

        match = query["match"]["title"]
        terms = tokenize(match["query"])

        hits = []
        for doc_id, source in self.docs(index).items():
            title_tokens = tokenize(source.get("title"))
            score = sum(
                1
                for term in terms
                if any(
                    edit_distance(term, token) <= auto_fuzziness(term)
                    for token in title_tokens
                )
            )
            if score:
                hits.append({"_id": doc_id, "_score": float(score), "_source": source})

        hits.sort(key=lambda hit: (-hit["_score"], hit["_source"]["id"]))
        return {"hits": {"total": {"value": len(hits)}, "hits": hits[:size]}}

    async def close(self) -> None:
        pass


# ============================================================================
# Redis
# ============================================================================


class FakeRedis:
    """Async Redis client backed by a dict (string values, TTL recorded)."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False
        self.before_set: Hook | None = None

    def _check(self) -> None:
        if self.fail:
            raise CacheConnectionError("cache unreachable")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        if self.before_set is not None:
            hook, self.before_set = self.before_set, None
            await hook()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def aclose(self) -> None:
        pass
