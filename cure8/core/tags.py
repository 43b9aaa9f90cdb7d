from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from cure8.core.errors import InvalidTag

COLLECTION_TAG_PREFIX = "#"


@dataclass(frozen=True)
class FreeformTag:
    value: str

    def __post_init__(self):
        if not self.value or self.value != self.value.strip():
            raise InvalidTag(f"invalid tag: {self.value!r}")
        if self.value.startswith(COLLECTION_TAG_PREFIX):
            raise InvalidTag(f"free-form tag cannot start with '#': {self.value!r}")

    @property
    def token(self) -> str:
        return self.value

    @property
    def is_collection(self) -> bool:
        return False


@dataclass(frozen=True)
class CollectionTag:
    slug: str

    def __post_init__(self):
        if not self.slug or self.slug != self.slug.strip():
            raise InvalidTag(f"invalid collection slug: {self.slug!r}")
        if self.slug.startswith(COLLECTION_TAG_PREFIX):
            raise InvalidTag(f"collection slug already prefixed: {self.slug!r}")

    @property
    def token(self) -> str:
        return f"{COLLECTION_TAG_PREFIX}{self.slug}"

    @property
    def is_collection(self) -> bool:
        return True


Tag = Union[FreeformTag, CollectionTag]


def parse_tag(raw: str | Tag | None) -> Tag | None:
    """Classify a raw tag string; blank input gives ``None``."""
    if isinstance(raw, (FreeformTag, CollectionTag)):
        return raw
    text = (raw or "").strip()
    if not text:
        return None
    if text.startswith(COLLECTION_TAG_PREFIX):
        slug = text[len(COLLECTION_TAG_PREFIX) :].strip()
        if not slug:
            return None
        return CollectionTag(slug)
    return FreeformTag(text)


def collection_tag(collection) -> CollectionTag:
    return CollectionTag(collection.slug)


def is_collection_token(token: str) -> bool:
    return token.startswith(COLLECTION_TAG_PREFIX)


def normalize_tags(raw_tags) -> tuple[str, ...]:
    """Deduplicated tag tokens in first-seen order; blanks and non-strings dropped."""
    if not isinstance(raw_tags, (list, tuple)):
        return ()
    seen: dict[str, None] = {}
    for raw in raw_tags:
        if not isinstance(raw, str):
            continue
        tag = parse_tag(raw)
        if tag is not None:
            seen.setdefault(tag.token, None)
    return tuple(seen)
