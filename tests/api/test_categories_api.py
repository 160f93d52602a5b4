"""Tests for category API endpoints."""

import pytest
from httpx import AsyncClient

from tests.fakes import FakeRedis


async def create_category(client: AsyncClient, title: str) -> dict:
    response = await client.post("/categories", json={"title": title})
    assert response.status_code == 201
    return response.json()


class TestCategoryWrites:
    """Tests for category create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_category(self, client: AsyncClient) -> None:
        response = await client.post("/categories", json={"title": "Outdoor Gear"})

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "outdoor-gear"
        assert data["title"] == "Outdoor Gear"

    @pytest.mark.asyncio
    async def test_duplicate_category(self, client: AsyncClient) -> None:
        await create_category(client, "Outdoor Gear")

        response = await client.post("/categories", json={"title": "Outdoor Gear"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_IDENTIFIER"

    @pytest.mark.asyncio
    async def test_rename_category(self, client: AsyncClient, cache_client: FakeRedis) -> None:
        """Renaming evicts cached products that embed the category."""
        gear = await create_category(client, "Outdoor Gear")
        await client.post("/products", json={"title": "Tent", "categoryIds": [gear["id"]]})
        await client.get("/products/tent")
        assert "product_tent" in cache_client.store

        response = await client.put(f"/categories/{gear['id']}", json={"title": "Camping"})

        assert response.status_code == 200
        assert response.json()["slug"] == "camping"
        assert "product_tent" not in cache_client.store
        product = (await client.get("/products/tent")).json()
        assert product["categories"][0]["title"] == "Camping"

    @pytest.mark.asyncio
    async def test_delete_category(self, client: AsyncClient) -> None:
        gear = await create_category(client, "Outdoor Gear")
        created = await client.post(
            "/products", json={"title": "Tent", "categoryIds": [gear["id"]]}
        )

        response = await client.delete(f"/categories/{gear['id']}")

        assert response.status_code == 200
        product = (await client.get(f"/products/id/{created.json()['id']}")).json()
        assert product["categories"] == []
        assert (await client.get(f"/categories/id/{gear['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_update_missing(self, client: AsyncClient) -> None:
        response = await client.put("/categories/77", json={"title": "X"})
        assert response.status_code == 404


class TestCategoryReads:
    """Tests for category read endpoints."""

    @pytest.mark.asyncio
    async def test_list_categories(self, client: AsyncClient) -> None:
        await create_category(client, "A")
        await create_category(client, "B")

        response = await client.get("/categories")

        assert [c["title"] for c in response.json()] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_category_page(self, client: AsyncClient) -> None:
        """Page responses echo pagination as page/perPage."""
        gear = await create_category(client, "Outdoor Gear")
        for title in ["Tent", "Stove", "Lamp"]:
            await client.post("/products", json={"title": title, "categoryIds": [gear["id"]]})

        response = await client.get(
            "/categories/outdoor-gear", params={"page": 2, "perPage": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["category"] == gear
        assert data["total"] == 3
        assert data["page"] == 2
        assert data["perPage"] == 2
        assert [p["slug"] for p in data["products"]] == ["lamp"]

    @pytest.mark.asyncio
    async def test_category_page_defaults(self, client: AsyncClient) -> None:
        await create_category(client, "Outdoor Gear")

        data = (await client.get("/categories/outdoor-gear")).json()

        assert data["page"] == 1
        assert data["perPage"] == 10
        assert data["products"] == []

    @pytest.mark.asyncio
    async def test_category_page_invalid_pagination(self, client: AsyncClient) -> None:
        await create_category(client, "Outdoor Gear")

        response = await client.get("/categories/outdoor-gear", params={"page": 0})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_category_page_missing(self, client: AsyncClient) -> None:
        response = await client.get("/categories/nothing")
        assert response.status_code == 404
