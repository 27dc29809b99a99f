import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_HYPHENS = re.compile(r"-+")

MAX_GENERATED_SLUG_LENGTH = 60


def slugify(title: str) -> str:
    """Derive a URL slug from a title.

    Lowercases, collapses every run of characters outside [a-z0-9] into one
    hyphen and trims leading/trailing hyphens. Titles without any ASCII
    letters or digits produce an empty string.

        >>> slugify("Hello, World!  2024")
        'hello-world-2024'
    """
    return _NON_ALNUM.sub("-", title.lower()).strip("-")


def sanitize_slug(slug: str, max_length: int = MAX_GENERATED_SLUG_LENGTH) -> str:
    """Clean a machine-suggested slug and cap its length"""
    cleaned = _NON_SLUG.sub("-", slug.lower().strip())
    cleaned = _HYPHENS.sub("-", cleaned).strip("-")
    return cleaned[:max_length].rstrip("-")
