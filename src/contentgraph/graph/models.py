"""
Relationship graph data model.

The graph is an immutable snapshot: edge indexes are read-only mappings of
tuples, and relation maps handed to callers are fresh copies so that
hydrating ``Relation.entry`` never touches the cached snapshot.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from contentgraph.content.entry import Entry, EntryKey


class RelationType(Enum):
    """Kinds of relations between entries."""

    REFERENCE = "reference"
    REFERENCED_BY = "referenced-by"
    PARENT = "parent"
    CHILD = "child"
    SIBLING = "sibling"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"
    INDIRECT = "indirect"


@dataclass
class Relation:
    """An edge from one entry to another, seen from the source entry."""

    collection: str
    id: str
    type: RelationType
    field: str | None = None
    depth: int | None = None
    entry: Entry | None = None

    @property
    def key(self) -> EntryKey:
        return (self.collection, self.id)

    def copy(self) -> Relation:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "collection": self.collection,
            "id": self.id,
            "type": self.type.value,
        }
        if self.field is not None:
            result["field"] = self.field
        if self.depth is not None:
            result["depth"] = self.depth
        if self.entry is not None:
            result["entry"] = self.entry.to_dict()
        return result


@dataclass
class RelationMap:
    """All relations of one entry."""

    collection: str
    id: str
    references: list[Relation] = field(default_factory=list)
    referenced_by: list[Relation] = field(default_factory=list)
    parent: Relation | None = None
    children: list[Relation] = field(default_factory=list)
    siblings: list[Relation] = field(default_factory=list)
    ancestors: list[Relation] = field(default_factory=list)
    descendants: list[Relation] = field(default_factory=list)
    indirect: list[Relation] = field(default_factory=list)

    LIST_FIELDS = (
        "references",
        "referenced_by",
        "children",
        "siblings",
        "ancestors",
        "descendants",
        "indirect",
    )

    @property
    def key(self) -> EntryKey:
        return (self.collection, self.id)

    def copy(self) -> RelationMap:
        return RelationMap(
            collection=self.collection,
            id=self.id,
            parent=self.parent.copy() if self.parent else None,
            **{name: [r.copy() for r in getattr(self, name)] for name in self.LIST_FIELDS},
        )

    def filter_types(self, types: Iterable[RelationType | str]) -> RelationMap:
        """Project the map onto the requested relation types.

        Returns a new map; this one is left untouched.
        """
        wanted = {RelationType(t) for t in types}
        parent = self.parent if self.parent and self.parent.type in wanted else None
        return RelationMap(
            collection=self.collection,
            id=self.id,
            parent=parent,
            **{
                name: [r for r in getattr(self, name) if r.type in wanted]
                for name in self.LIST_FIELDS
            },
        )

    def all_relations(self) -> list[Relation]:
        relations: list[Relation] = []
        if self.parent:
            relations.append(self.parent)
        for name in self.LIST_FIELDS:
            relations.extend(getattr(self, name))
        return relations

    def is_empty(self) -> bool:
        return not self.all_relations()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "collection": self.collection,
            "id": self.id,
            "parent": self.parent.to_dict() if self.parent else None,
        }
        for name in self.LIST_FIELDS:
            result[name] = [r.to_dict() for r in getattr(self, name)]
        return result


@dataclass(frozen=True)
class GraphOptions:
    """Options controlling a graph build.

    Graphs are cached per distinct fingerprint of these options.
    """

    include_indirect: bool = False
    max_indirect_depth: int = 3
    parent_field: str = "parent"

    def fingerprint(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)


@dataclass(frozen=True)
class HierarchyNode:
    """Parent/children adjacency of one entry."""

    parent: EntryKey | None = None
    children: tuple[EntryKey, ...] = ()


@dataclass(frozen=True)
class RelationshipGraph:
    """Immutable whole-store index of reference and hierarchy edges."""

    total_entries: int
    collections: tuple[str, ...]
    forward_edges: Mapping[EntryKey, tuple[Relation, ...]]
    backward_edges: Mapping[EntryKey, tuple[Relation, ...]]
    hierarchy_index: Mapping[EntryKey, HierarchyNode]
    relation_maps: Mapping[EntryKey, RelationMap] = field(repr=False)
    built_at: datetime
    options: GraphOptions

    def has_entry(self, collection: str, entry_id: str) -> bool:
        return (collection, entry_id) in self.relation_maps

    def get_relation_map(self, collection: str, entry_id: str) -> RelationMap | None:
        """Get a copy of the relation map of an entry, or None if absent."""
        relation_map = self.relation_maps.get((collection, entry_id))
        return relation_map.copy() if relation_map is not None else None

    def get_forward_edges(self, collection: str, entry_id: str) -> list[Relation]:
        """Copies of the references held by an entry."""
        return [r.copy() for r in self.forward_edges.get((collection, entry_id), ())]

    def get_backward_edges(self, collection: str, entry_id: str) -> list[Relation]:
        """Copies of the references pointing at an entry."""
        return [r.copy() for r in self.backward_edges.get((collection, entry_id), ())]

    def entries_in(self, collection: str) -> list[EntryKey]:
        return [key for key in self.relation_maps if key[0] == collection]

    def edge_set(self) -> set[tuple[EntryKey, str | None, EntryKey]]:
        """Forward edges as an order-insensitive set of (source, field, target)."""
        return {
            (source, relation.field, relation.key)
            for source, relations in self.forward_edges.items()
            for relation in relations
        }

    def stats(self) -> dict[str, Any]:
        """Summary counts for display."""
        by_collection: dict[str, int] = {}
        for collection, _ in self.relation_maps:
            by_collection[collection] = by_collection.get(collection, 0) + 1

        return {
            "total_entries": self.total_entries,
            "collections": list(self.collections),
            "by_collection": by_collection,
            "forward_edges": sum(len(r) for r in self.forward_edges.values()),
            "backward_edges": sum(len(r) for r in self.backward_edges.values()),
            "hierarchy_links": sum(
                1 for node in self.hierarchy_index.values() if node.parent is not None
            ),
            "indirect_relations": sum(len(m.indirect) for m in self.relation_maps.values()),
            "built_at": self.built_at.isoformat(),
            "options": asdict(self.options),
        }
