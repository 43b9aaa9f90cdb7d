from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from cure8.core.tags import Tag, is_collection_token, normalize_tags, parse_tag
from cure8.core.types import Card, CardStatus, utcnow

logger = logging.getLogger(__name__)

# Fields a caller may change through ``update``; tags go through the tag methods.
UPDATABLE_FIELDS = frozenset(
    {"url", "title", "notes", "status", "domain", "image", "description", "metadata"}
)


def _collections_of(tags: Iterable[str]) -> tuple[str, ...]:
    return tuple(tag for tag in tags if is_collection_token(tag))


def _normalize_card(card: Card) -> Card:
    tags = normalize_tags(list(card.tags) + list(card.collections))
    status = CardStatus(card.status) if card.status else CardStatus.READY
    return replace(card, tags=tags, collections=_collections_of(tags), status=status)


class CardTagIndex:
    """Owns each card's tag list and its mirrored collection-membership list.

    Knows nothing about the collection tree; a collection is only ever seen
    here as a ``#slug`` tag value. Every tag operation is idempotent per card
    and returns the cards it actually changed.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._cards: dict[str, Card] = {}
        self._order: list[str] = []

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def get(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def list(self) -> list[Card]:
        return [self._cards[cid] for cid in self._order]

    def all_tags(self) -> list[str]:
        seen: dict[str, None] = {}
        for card in self.list():
            for tag in card.tags:
                seen.setdefault(tag, None)
        return sorted(seen)

    def set_cards(self, cards: Iterable[Card]) -> None:
        ordered = sorted(cards, key=lambda card: card.created_at, reverse=True)
        self._cards = {}
        self._order = []
        for card in ordered:
            if card.id not in self._cards:
                self._order.append(card.id)
            self._cards[card.id] = _normalize_card(card)

    def upsert(self, card: Card) -> Card:
        normalized = _normalize_card(card)
        if card.id not in self._cards:
            self._order.insert(0, card.id)
        self._cards[card.id] = normalized
        return normalized

    def update(self, card_id: str, **fields) -> Card | None:
        card = self._cards.get(card_id)
        if card is None:
            return None
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"cannot update card fields: {', '.join(sorted(unknown))}")
        if "status" in fields:
            fields["status"] = CardStatus(fields["status"])
        updated = replace(card, **fields, updated_at=self._clock())
        self._cards[card_id] = updated
        return updated

    def update_status(self, card_id: str, status: CardStatus | str) -> Card | None:
        return self.update(card_id, status=status)

    def set_tags(self, card_id: str, raw_tags) -> Card | None:
        card = self._cards.get(card_id)
        if card is None:
            return None
        tags = normalize_tags(list(raw_tags or []))
        updated = replace(
            card,
            tags=tags,
            collections=_collections_of(tags),
            updated_at=self._clock(),
        )
        self._cards[card_id] = updated
        return updated

    def remove_card(self, card_id: str) -> Card | None:
        card = self._cards.pop(card_id, None)
        if card is not None:
            self._order.remove(card_id)
        return card

    def remove_cards(self, card_ids: Iterable[str]) -> list[Card]:
        removed = []
        for card_id in dict.fromkeys(card_ids):
            card = self.remove_card(card_id)
            if card is not None:
                removed.append(card)
        return removed

    def clear(self) -> None:
        self._cards = {}
        self._order = []

    def _with_tag(self, card: Card, token: str, timestamp: datetime) -> Card:
        collections = card.collections
        if is_collection_token(token) and token not in collections:
            collections = collections + (token,)
        return replace(
            card,
            tags=card.tags + (token,),
            collections=collections,
            updated_at=timestamp,
        )

    def _without_tag(self, card: Card, token: str, timestamp: datetime) -> Card:
        return replace(
            card,
            tags=tuple(t for t in card.tags if t != token),
            collections=tuple(c for c in card.collections if c != token),
            updated_at=timestamp,
        )

    def _commit(self, updated: list[Card]) -> list[Card]:
        for card in updated:
            self._cards[card.id] = card
        return updated

    def assign_tag(self, card_id: str, tag: str | Tag) -> Card | None:
        changed = self.bulk_assign_tag([card_id], tag)
        return changed[0] if changed else None

    def remove_tag(self, card_id: str, tag: str | Tag) -> Card | None:
        changed = self.bulk_remove_tag([card_id], tag)
        return changed[0] if changed else None

    def bulk_assign_tag(self, card_ids: Iterable[str], tag: str | Tag) -> list[Card]:
        parsed = parse_tag(tag)
        if parsed is None:
            return []
        token = parsed.token
        timestamp = self._clock()
        updated = []
        for card_id in dict.fromkeys(card_ids):
            card = self._cards.get(card_id)
            if card is None or token in card.tags:
                continue
            updated.append(self._with_tag(card, token, timestamp))
        return self._commit(updated)

    def bulk_remove_tag(self, card_ids: Iterable[str], tag: str | Tag) -> list[Card]:
        parsed = parse_tag(tag)
        if parsed is None:
            return []
        token = parsed.token
        timestamp = self._clock()
        updated = []
        for card_id in dict.fromkeys(card_ids):
            card = self._cards.get(card_id)
            if card is None or token not in card.tags:
                continue
            updated.append(self._without_tag(card, token, timestamp))
        return self._commit(updated)

    def replace_tag_across_cards(
        self, old_tag: str | Tag, new_tag: str | Tag
    ) -> list[Card]:
        old, new = parse_tag(old_tag), parse_tag(new_tag)
        if old is None or new is None or old.token == new.token:
            return []
        timestamp = self._clock()
        updated = []
        for card in self.list():
            if old.token not in card.tags:
                continue
            swapped = self._without_tag(card, old.token, timestamp)
            if new.token not in swapped.tags:
                swapped = self._with_tag(swapped, new.token, timestamp)
            updated.append(swapped)
        logger.debug(
            "replaced tag %s with %s on %d cards", old.token, new.token, len(updated)
        )
        return self._commit(updated)

    def remove_tag_from_all(self, tag: str | Tag) -> list[Card]:
        parsed = parse_tag(tag)
        if parsed is None:
            return []
        timestamp = self._clock()
        updated = [
            self._without_tag(card, parsed.token, timestamp)
            for card in self.list()
            if parsed.token in card.tags
        ]
        logger.debug("removed tag %s from %d cards", parsed.token, len(updated))
        return self._commit(updated)
