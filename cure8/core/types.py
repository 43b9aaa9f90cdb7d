from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class RemoveMode(str, Enum):
    REPARENT = "reparent"
    DELETE_SUBTREE = "delete-subtree"


class CardStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Collection:
    id: str
    name: str
    slug: str
    parent_id: str | None
    created_at: datetime
    updated_at: datetime
    is_expanded: bool = True

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "parent_id": self.parent_id,
            "is_expanded": self.is_expanded,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class TreeNode:
    collection: Collection
    depth: int
    children: list[TreeNode] = field(default_factory=list)

    def as_dict(self):
        return {
            "collection": self.collection.as_dict(),
            "depth": self.depth,
            "children": [child.as_dict() for child in self.children],
        }


@dataclass(frozen=True)
class Card:
    id: str
    url: str
    title: str
    created_at: datetime
    updated_at: datetime
    status: CardStatus = CardStatus.READY
    notes: str | None = None
    domain: str | None = None
    image: str | None = None
    description: str | None = None
    metadata: Any = None
    tags: tuple[str, ...] = ()
    collections: tuple[str, ...] = ()

    def as_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "notes": self.notes or "",
            "status": self.status.value,
            "domain": self.domain,
            "image": self.image,
            "description": self.description,
            "metadata": self.metadata,
            "tags": list(self.tags),
            "collections": list(self.collections),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class RenameResult:
    collection: Collection
    previous_slug: str

    @property
    def slug_changed(self) -> bool:
        return self.previous_slug != self.collection.slug


@dataclass(frozen=True)
class RemoveResult:
    removed: list[Collection]
    reparented: list[Collection]
