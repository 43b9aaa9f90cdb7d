from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

FALLBACK_SLUG = "collection"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase ASCII token with every run of other characters turned into "-"."""
    folded = unicodedata.normalize("NFKD", name or "")
    folded = folded.encode("ascii", "ignore").decode("ascii").lower()
    return _NON_ALNUM_RE.sub("-", folded).strip("-")


def unique_slug(name: str, taken: Iterable[str]) -> str:
    """Slug for ``name`` that does not collide with any slug in ``taken``.

    Collisions walk the ladder ``base-2``, ``base-3``, ... and take the
    first free value, so the same inputs always give the same slug.
    """
    base = slugify(name) or FALLBACK_SLUG
    existing = set(taken)
    if base not in existing:
        return base
    suffix = 2
    while f"{base}-{suffix}" in existing:
        suffix += 1
    return f"{base}-{suffix}"
