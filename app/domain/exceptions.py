"""Domain exceptions.

All domain-level errors raised by the catalog core. The API layer maps
each class to an HTTP status and a machine-readable error code; the core
never retries on any of them.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Input Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when required input is missing or malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Explanation of what is wrong with the input.
            field: Name of the offending field, if any.
        """
        super().__init__(message, details={"field": field} if field else {})
        self.field = field


class DuplicateIdentifierError(DomainError):
    """Raised when a slug or title collides with an existing record."""

    def __init__(self, entity_type: str, slug: str) -> None:
        """Initialize duplicate identifier error.

        Args:
            entity_type: Type of entity (e.g., "Product", "Category").
            slug: The slug that is already taken.
        """
        super().__init__(
            f"{entity_type} with slug '{slug}' already exists",
            details={"entity_type": entity_type, "slug": slug},
        )
        self.entity_type = entity_type
        self.slug = slug


class NotFoundError(DomainError):
    """Raised when a referenced id or slug does not exist."""

    def __init__(self, entity_type: str, identifier: int | str) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity (e.g., "Product", "Category").
            identifier: The id or slug that was looked up.
        """
        super().__init__(
            f"{entity_type} not found: {identifier}",
            details={"entity_type": entity_type, "identifier": identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


class AssociationResolutionError(DomainError):
    """Raised when category ids supplied for a product do not resolve."""

    def __init__(self, missing_ids: list[int]) -> None:
        """Initialize association resolution error.

        Args:
            missing_ids: Category ids with no matching category.
        """
        super().__init__(
            f"Unknown category ids: {missing_ids}",
            details={"missing_category_ids": missing_ids},
        )
        self.missing_ids = missing_ids


# ============================================================================
# Store Errors
# ============================================================================


class DependencyUnavailableError(DomainError):
    """Raised when the search index or cache cannot serve a request.

    Non-fatal for writes (they degrade instead), fatal for search reads.
    """

    def __init__(self, dependency: str, reason: str) -> None:
        """Initialize dependency unavailable error.

        Args:
            dependency: Name of the store ("search_index", "cache").
            reason: What went wrong.
        """
        super().__init__(
            f"{dependency} unavailable: {reason}",
            details={"dependency": dependency, "reason": reason},
        )
        self.dependency = dependency


class InternalError(DomainError):
    """Raised on an unexpected system-of-record failure."""

    pass
