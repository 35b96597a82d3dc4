"""
Entry model.

An entry is one content record identified by its (collection, id) pair.
References are typed pointers to other entries embedded in entry data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EntryKey = tuple[str, str]


def entry_key(collection: str, entry_id: str) -> EntryKey:
    return (collection, entry_id)


def format_key(key: EntryKey) -> str:
    """Format an entry key as ``collection:id``."""
    return f"{key[0]}:{key[1]}"


@dataclass(frozen=True)
class Reference:
    """A pointer to another entry."""

    collection: str
    id: str

    @property
    def key(self) -> EntryKey:
        return (self.collection, self.id)

    def to_dict(self) -> dict[str, str]:
        return {"collection": self.collection, "id": self.id}


@dataclass(frozen=True)
class Entry:
    """A single content entry.

    Entries are created by the content store and never mutated by the engine.
    """

    collection: str
    id: str
    data: dict[str, Any] = field(default_factory=dict, hash=False)
    body: str = field(default="", compare=False, hash=False)

    @property
    def key(self) -> EntryKey:
        return (self.collection, self.id)

    @property
    def title(self) -> str:
        return str(self.data.get("title", self.id))

    @property
    def parent(self) -> Any:
        return self.data.get("parent")

    @property
    def is_draft(self) -> bool:
        return bool(self.data.get("draft", False))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"collection": self.collection, "id": self.id, "data": self.data}


@dataclass(frozen=True)
class CollectionMeta:
    """Per-collection metadata.

    ``references`` maps field names to the collection their plain string
    values point into, e.g. ``{"author": "authors"}``.
    """

    name: str
    has_page: bool = True
    items_have_page: bool = True
    references: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> CollectionMeta:
        refs = data.get("references") or {}
        return cls(
            name=name,
            has_page=data.get("hasPage", True) is not False,
            items_have_page=data.get("itemsHasPage", True) is not False,
            references={str(k): str(v) for k, v in refs.items()} if isinstance(refs, dict) else {},
        )


def json_default(value: Any) -> Any:
    """``json.dumps`` default: references as mappings, everything else as str."""
    if isinstance(value, Reference):
        return value.to_dict()
    return str(value)
