"""Relationship graph: models, builder and cache."""

from contentgraph.graph.builder import GraphBuilder, build_relationship_graph
from contentgraph.graph.cache import GraphCache
from contentgraph.graph.models import (
    GraphOptions,
    Relation,
    RelationMap,
    RelationshipGraph,
    RelationType,
)

__all__ = [
    "GraphBuilder",
    "GraphCache",
    "GraphOptions",
    "Relation",
    "RelationMap",
    "RelationType",
    "RelationshipGraph",
    "build_relationship_graph",
]
