from cure8.core.cards import CardTagIndex
from cure8.core.collections import MAX_DEPTH, CollectionStore
from cure8.core.errors import CollectionNotFound, Cure8Error, DepthExceeded, InvalidTag
from cure8.core.orchestrator import CollectionsOrchestrator, RemoveOutcome, RenameOutcome
from cure8.core.slug import slugify, unique_slug
from cure8.core.tags import CollectionTag, FreeformTag, parse_tag
from cure8.core.types import Card, CardStatus, Collection, RemoveMode, TreeNode

__all__ = [
    "MAX_DEPTH",
    "Card",
    "CardStatus",
    "CardTagIndex",
    "Collection",
    "CollectionNotFound",
    "CollectionStore",
    "CollectionTag",
    "CollectionsOrchestrator",
    "Cure8Error",
    "DepthExceeded",
    "FreeformTag",
    "InvalidTag",
    "RemoveMode",
    "RemoveOutcome",
    "RenameOutcome",
    "TreeNode",
    "parse_tag",
    "slugify",
    "unique_slug",
]
