"""
Content model.

Provides:
- Entry, Reference and CollectionMeta types
- Page policy deciding which entries are addressable

Stores live in ``contentgraph.content.store``.
"""

from contentgraph.content.entry import CollectionMeta, Entry, Reference
from contentgraph.content.pages import DefaultPagePolicy, PagePolicy

__all__ = [
    "Entry",
    "Reference",
    "CollectionMeta",
    "PagePolicy",
    "DefaultPagePolicy",
]
