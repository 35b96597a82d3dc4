"""Exception types raised by the graph and query engine.

Dangling references are deliberately absent: they are surfaced as ``None``
plus a logged warning, never raised.
"""

from __future__ import annotations


class ContentGraphError(Exception):
    """Base exception for contentgraph errors."""


class EntryNotFoundError(ContentGraphError, LookupError):
    """Requested (collection, id) has no backing entry."""

    def __init__(self, collection: str, entry_id: str):
        self.collection = collection
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {collection}/{entry_id}")


class MissingCollectionError(ContentGraphError, LookupError):
    """The content store does not know the named collection."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


class QueryError(ContentGraphError, ValueError):
    """A query was constructed with invalid parameters."""
