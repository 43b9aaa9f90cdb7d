from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cure8.core.cards import CardTagIndex
from cure8.core.collections import CollectionStore
from cure8.core.tags import CollectionTag, collection_tag
from cure8.core.types import Card, Collection, RemoveMode, TreeNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenameOutcome:
    collection: Collection
    previous_slug: str
    retagged: list[Card] = field(default_factory=list)


@dataclass(frozen=True)
class RemoveOutcome:
    removed: list[Collection]
    reparented: list[Collection]
    untagged: list[Card] = field(default_factory=list)


def _distinct_tags(collections: list[Collection]) -> list[CollectionTag]:
    return list(dict.fromkeys(collection_tag(c) for c in collections))


class CollectionsOrchestrator:
    """Sequences collection mutations with the card-tag updates they imply.

    The collection store always runs first; the tag values handed to the card
    index are derived from what it returns.
    """

    def __init__(self, collections: CollectionStore, cards: CardTagIndex):
        self.collections = collections
        self.cards = cards

    def list(self) -> list[Collection]:
        return self.collections.list()

    def tree(self) -> list[TreeNode]:
        return self.collections.tree()

    def create(self, name: str, parent_id: str | None = None) -> Collection:
        return self.collections.create(name, parent_id)

    def rename(self, collection_id: str, name: str) -> RenameOutcome:
        result = self.collections.rename(collection_id, name)
        retagged: list[Card] = []
        if result.slug_changed:
            retagged = self.cards.replace_tag_across_cards(
                CollectionTag(result.previous_slug),
                collection_tag(result.collection),
            )
            logger.info(
                "collection %s slug %s -> %s retagged %d cards",
                collection_id,
                result.previous_slug,
                result.collection.slug,
                len(retagged),
            )
        return RenameOutcome(
            collection=result.collection,
            previous_slug=result.previous_slug,
            retagged=retagged,
        )

    def remove(
        self, collection_id: str, mode: RemoveMode | str = RemoveMode.REPARENT
    ) -> RemoveOutcome:
        result = self.collections.remove(collection_id, mode)
        untagged: dict[str, Card] = {}
        for tag in _distinct_tags(result.removed):
            for card in self.cards.remove_tag_from_all(tag):
                untagged[card.id] = card
        logger.info(
            "removed %d collections (%s), untagged %d cards",
            len(result.removed),
            RemoveMode(mode).value,
            len(untagged),
        )
        return RemoveOutcome(
            removed=result.removed,
            reparented=result.reparented,
            untagged=list(untagged.values()),
        )

    def toggle_expanded(self, collection_id: str) -> Collection | None:
        return self.collections.toggle_expanded(collection_id)

    def set_expanded(self, collection_id: str, expanded: bool) -> Collection | None:
        return self.collections.set_expanded(collection_id, expanded)
