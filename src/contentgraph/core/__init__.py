"""Core utilities for contentgraph."""

from contentgraph.core.config import Settings, get_paths, get_site_root, load_settings
from contentgraph.core.errors import (
    ContentGraphError,
    EntryNotFoundError,
    MissingCollectionError,
    QueryError,
)

__all__ = [
    # Config
    "Settings",
    "get_site_root",
    "get_paths",
    "load_settings",
    # Errors
    "ContentGraphError",
    "EntryNotFoundError",
    "MissingCollectionError",
    "QueryError",
]
