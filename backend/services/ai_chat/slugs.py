import re

_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG = re.compile(r"[^a-z0-9-]")


def slugify(name) -> str:
    """Lowercase, whitespace runs to hyphens, drop anything outside [a-z0-9-]."""
    if not name:
        return ""
    return _NOT_SLUG.sub("", _WHITESPACE.sub("-", str(name).lower()))
