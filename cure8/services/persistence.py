from __future__ import annotations

from collections.abc import Iterable
from contextlib import contextmanager

from sqlalchemy import func

from cure8.core.types import Card, Collection
from cure8.extensions import db
from cure8.library import Library
from cure8.models import CardRecord, CollectionRecord


def load_library(library: Library) -> None:
    """Hydrate both in-memory stores from the database."""
    collections = CollectionRecord.query.order_by(
        CollectionRecord.position.asc(), CollectionRecord.created_at.asc()
    ).all()
    library.collections.load(row.to_collection() for row in collections)
    cards = CardRecord.query.order_by(CardRecord.created_at.desc()).all()
    library.cards.set_cards(row.to_card() for row in cards)


def _next_position() -> int:
    current = db.session.query(func.max(CollectionRecord.position)).scalar()
    return 0 if current is None else current + 1


def save_collections(collections: Iterable[Collection]) -> None:
    position = None
    for collection in collections:
        row = db.session.get(CollectionRecord, collection.id)
        if row is None:
            position = _next_position() if position is None else position + 1
            row = CollectionRecord(id=collection.id, position=position)
            row.apply(collection)
            db.session.add(row)
        else:
            row.apply(collection)


def delete_collections(collections: Iterable[Collection]) -> int:
    ids = [collection.id for collection in collections]
    if not ids:
        return 0
    return CollectionRecord.query.filter(CollectionRecord.id.in_(ids)).delete(
        synchronize_session=False
    )


def save_cards(cards: Iterable[Card]) -> None:
    for card in cards:
        row = db.session.get(CardRecord, card.id)
        if row is None:
            row = CardRecord(id=card.id)
            db.session.add(row)
        row.apply(card)


def delete_cards(cards: Iterable[Card]) -> int:
    ids = [card.id for card in cards]
    if not ids:
        return 0
    return CardRecord.query.filter(CardRecord.id.in_(ids)).delete(
        synchronize_session=False
    )


@contextmanager
def write_through(library: Library):
    """Hold the library lock across a core mutation and its commit.

    Any failure rolls the session back and reloads both stores from the
    database, so memory never keeps a change the database did not accept.
    """
    with library.lock:
        try:
            yield library
            db.session.commit()
        except Exception:
            db.session.rollback()
            load_library(library)
            raise
