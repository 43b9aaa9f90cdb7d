from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from cure8.core.errors import CollectionNotFound, DepthExceeded
from cure8.core.slug import unique_slug
from cure8.core.types import (
    Collection,
    RemoveMode,
    RemoveResult,
    RenameResult,
    TreeNode,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)

MAX_DEPTH = 4
DEFAULT_COLLECTION_NAME = "Untitled Collection"


def _clean_name(name: str | None) -> str:
    return (name or "").strip() or DEFAULT_COLLECTION_NAME


class CollectionStore:
    """Owns the collection tree as a flat id map plus an insertion-order list.

    Records are immutable; every mutation swaps in new ``Collection`` values,
    so a caller holding an earlier record never sees it change underneath.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        max_depth: int = MAX_DEPTH,
    ):
        self._clock = clock
        self._id_factory = id_factory
        self.max_depth = max_depth
        self._collections: dict[str, Collection] = {}
        self._order: list[str] = []

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, collection_id: object) -> bool:
        return collection_id in self._collections

    def get(self, collection_id: str) -> Collection | None:
        return self._collections.get(collection_id)

    def _require(self, collection_id: str) -> Collection:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise CollectionNotFound(collection_id)
        return collection

    def list(self) -> list[Collection]:
        return [self._collections[cid] for cid in self._order]

    def load(self, collections: Iterable[Collection]) -> None:
        """Replace the store contents with an already-ordered snapshot."""
        self._collections = {}
        self._order = []
        for collection in collections:
            if collection.id not in self._collections:
                self._order.append(collection.id)
            self._collections[collection.id] = collection

    def clear(self) -> None:
        self._collections = {}
        self._order = []

    def children_of(self, parent_id: str | None) -> list[Collection]:
        return [c for c in self.list() if c.parent_id == parent_id]

    def depth(self, collection_id: str) -> int:
        """Number of ancestors of ``collection_id``; root-level nodes are 0."""
        collection = self._require(collection_id)
        depth = 0
        seen = {collection.id}
        current = collection.parent_id
        while current is not None:
            parent = self._collections.get(current)
            if parent is None or parent.id in seen:
                break
            depth += 1
            seen.add(parent.id)
            current = parent.parent_id
        return depth

    def subtree_ids(self, collection_id: str) -> list[str]:
        """``collection_id`` followed by all of its descendants, depth first."""
        self._require(collection_id)
        children = self._children_index()
        ids: list[str] = []
        stack = [collection_id]
        while stack:
            current = stack.pop()
            if current in ids:
                continue
            ids.append(current)
            stack.extend(reversed(children.get(current, [])))
        return ids

    def _children_index(self) -> dict[str | None, list[str]]:
        index: dict[str | None, list[str]] = {}
        for cid in self._order:
            index.setdefault(self._collections[cid].parent_id, []).append(cid)
        return index

    def _sibling_slugs(
        self, parent_id: str | None, exclude_id: str | None = None
    ) -> set[str]:
        return {
            c.slug
            for c in self._collections.values()
            if c.parent_id == parent_id and c.id != exclude_id
        }

    def _ensure_depth_allowed(self, parent_id: str | None) -> None:
        if parent_id is None:
            return
        if self.depth(parent_id) + 1 >= self.max_depth:
            raise DepthExceeded(self.max_depth)

    def create(self, name: str, parent_id: str | None = None) -> Collection:
        if parent_id is not None:
            self._require(parent_id)
        self._ensure_depth_allowed(parent_id)

        clean = _clean_name(name)
        timestamp = self._clock()
        collection = Collection(
            id=self._id_factory(),
            name=clean,
            slug=unique_slug(clean, self._sibling_slugs(parent_id)),
            parent_id=parent_id,
            created_at=timestamp,
            updated_at=timestamp,
            is_expanded=True,
        )
        self._collections[collection.id] = collection
        self._order.append(collection.id)
        logger.debug(
            "created collection %s slug=%s parent=%s",
            collection.id,
            collection.slug,
            parent_id,
        )
        return collection

    def rename(self, collection_id: str, name: str) -> RenameResult:
        existing = self._require(collection_id)
        clean = _clean_name(name)
        slug = unique_slug(
            clean, self._sibling_slugs(existing.parent_id, exclude_id=collection_id)
        )
        updated = replace(existing, name=clean, slug=slug, updated_at=self._clock())
        self._collections[collection_id] = updated
        logger.debug(
            "renamed collection %s slug %s -> %s", collection_id, existing.slug, slug
        )
        return RenameResult(collection=updated, previous_slug=existing.slug)

    def remove(
        self, collection_id: str, mode: RemoveMode | str = RemoveMode.REPARENT
    ) -> RemoveResult:
        mode = RemoveMode(mode)
        target = self._require(collection_id)

        if mode is RemoveMode.DELETE_SUBTREE:
            doomed = self.subtree_ids(collection_id)
            removed = [self._collections[cid] for cid in doomed]
            doomed_set = set(doomed)
            for cid in doomed:
                del self._collections[cid]
            self._order = [cid for cid in self._order if cid not in doomed_set]
            logger.debug(
                "removed collection subtree %s (%d nodes)", collection_id, len(removed)
            )
            return RemoveResult(removed=removed, reparented=[])

        timestamp = self._clock()
        reparented: list[Collection] = []
        for child in self.children_of(collection_id):
            moved = replace(child, parent_id=target.parent_id, updated_at=timestamp)
            self._collections[child.id] = moved
            reparented.append(moved)

        del self._collections[collection_id]
        self._order = [cid for cid in self._order if cid != collection_id]
        logger.debug(
            "removed collection %s, moved %d children to %s",
            collection_id,
            len(reparented),
            target.parent_id,
        )
        return RemoveResult(removed=[target], reparented=reparented)

    def toggle_expanded(self, collection_id: str) -> Collection | None:
        collection = self._collections.get(collection_id)
        if collection is None:
            return None
        return self._store_expanded(collection, not collection.is_expanded)

    def set_expanded(self, collection_id: str, expanded: bool) -> Collection | None:
        collection = self._collections.get(collection_id)
        if collection is None:
            return None
        if collection.is_expanded == bool(expanded):
            return collection
        return self._store_expanded(collection, bool(expanded))

    def _store_expanded(self, collection: Collection, expanded: bool) -> Collection:
        updated = replace(collection, is_expanded=expanded, updated_at=self._clock())
        self._collections[collection.id] = updated
        return updated

    def tree(self) -> list[TreeNode]:
        children = self._children_index()

        def build(parent_id: str | None, depth: int) -> list[TreeNode]:
            return [
                TreeNode(
                    collection=self._collections[cid],
                    depth=depth,
                    children=build(cid, depth + 1),
                )
                for cid in children.get(parent_id, [])
            ]

        return build(None, 0)
