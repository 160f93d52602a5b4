"""Domain layer - catalog error taxonomy.

Example usage:
    from app.domain import NotFoundError

    raise NotFoundError("Product", 42)
"""

from app.domain.exceptions import (
    AssociationResolutionError,
    DependencyUnavailableError,
    DomainError,
    DuplicateIdentifierError,
    InternalError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AssociationResolutionError",
    "DependencyUnavailableError",
    "DomainError",
    "DuplicateIdentifierError",
    "InternalError",
    "NotFoundError",
    "ValidationError",
]
