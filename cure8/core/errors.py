from __future__ import annotations


class Cure8Error(Exception):
    """Base class for failures raised by the collection and tag core."""


class CollectionNotFound(Cure8Error, LookupError):
    def __init__(self, collection_id: str):
        super().__init__(f"collection not found: {collection_id}")
        self.collection_id = collection_id


class DepthExceeded(Cure8Error):
    def __init__(self, max_depth: int):
        super().__init__(f"Collections can nest up to {max_depth} levels.")
        self.max_depth = max_depth


class InvalidTag(Cure8Error, ValueError):
    pass
