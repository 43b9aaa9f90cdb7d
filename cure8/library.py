from __future__ import annotations

import threading
from dataclasses import dataclass, field

from flask import current_app

from cure8.core.cards import CardTagIndex
from cure8.core.collections import CollectionStore
from cure8.core.orchestrator import CollectionsOrchestrator

EXTENSION_KEY = "cure8.library"


@dataclass
class Library:
    """Application-owned pair of stores plus the orchestrator wired to both."""

    collections: CollectionStore
    cards: CardTagIndex
    orchestrator: CollectionsOrchestrator
    lock: threading.RLock = field(default_factory=threading.RLock)


def build_library(
    collections: CollectionStore | None = None, cards: CardTagIndex | None = None
) -> Library:
    if collections is None:
        collections = CollectionStore()
    if cards is None:
        cards = CardTagIndex()
    return Library(
        collections=collections,
        cards=cards,
        orchestrator=CollectionsOrchestrator(collections, cards),
    )


def get_library() -> Library:
    return current_app.extensions[EXTENSION_KEY]
