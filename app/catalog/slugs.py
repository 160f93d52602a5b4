"""Slug derivation for catalog titles."""

from slugify import slugify as _slugify

from app.domain.exceptions import ValidationError


def slugify(text: str | None) -> str:
    """Derive a URL-safe identifier from a human title.

    Lower-cases, transliterates non-ASCII characters, collapses every run
    of other characters into a single hyphen and trims hyphens at both
    ends. The same input always yields the same slug.

    Args:
        text: Title to normalize.

    Returns:
        Slug made of lowercase alphanumerics separated by single hyphens.

    Raises:
        ValidationError: If the title is empty or has no alphanumerics.
    """
    if text is None or not text.strip():
        raise ValidationError("Title must not be empty", field="title")

    slug = _slugify(text, lowercase=True)
    if not slug:
        raise ValidationError(
            f"Title {text!r} has no characters usable in a slug",
            field="title",
        )
    return slug
