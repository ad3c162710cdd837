"""Helpers for URL-safe community handles."""

import re

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def generate_slug(title: str) -> str:
    """Derive a slug from a community title.

    >>> generate_slug("Python  Q&A -- Beginners!")
    'python-qa-beginners'
    """
    slug = _DISALLOWED.sub("", title.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")
