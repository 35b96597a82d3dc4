"""Tests for graph data model."""

from contentgraph.content.entry import Entry
from contentgraph.graph.builder import build_relationship_graph
from contentgraph.graph.models import GraphOptions, Relation, RelationMap, RelationType


def _map():
    return RelationMap(
        collection="services",
        id="frontend-dev",
        references=[Relation("blog", "post1", RelationType.REFERENCE, field="related")],
        parent=Relation("services", "web-development", RelationType.PARENT, depth=1),
        children=[Relation("services", "react", RelationType.CHILD, depth=1)],
    )


def test_relation_to_dict_omits_unset_fields():
    relation = Relation("services", "react", RelationType.CHILD, depth=1)
    assert relation.to_dict() == {
        "collection": "services", "id": "react", "type": "child", "depth": 1,
    }

    relation.entry = Entry("services", "react", {"title": "React"})
    assert relation.to_dict()["entry"]["data"] == {"title": "React"}


def test_filter_types_projects_without_mutating():
    relation_map = _map()
    only_children = relation_map.filter_types(["child"])

    assert only_children.parent is None
    assert only_children.references == []
    assert [r.id for r in only_children.children] == ["react"]
    assert relation_map.parent is not None
    assert len(relation_map.references) == 1


def test_filter_types_keeps_parent_when_requested():
    relation_map = _map().filter_types([RelationType.PARENT])
    assert relation_map.parent.id == "web-development"
    assert relation_map.children == []


def test_all_relations_and_is_empty():
    relation_map = _map()
    assert [r.type for r in relation_map.all_relations()] == [
        RelationType.PARENT, RelationType.REFERENCE, RelationType.CHILD,
    ]
    assert RelationMap(collection="a", id="b").is_empty()


def test_copy_is_deep_for_relations():
    relation_map = _map()
    copied = relation_map.copy()
    copied.children[0].entry = Entry("services", "react", {})
    copied.references.clear()

    assert relation_map.children[0].entry is None
    assert len(relation_map.references) == 1


def test_options_fingerprint():
    assert GraphOptions().fingerprint() == GraphOptions().fingerprint()
    assert GraphOptions().fingerprint() != GraphOptions(include_indirect=True).fingerprint()


async def test_graph_hands_out_copies(store):
    graph = await build_relationship_graph(store)
    relation_map = graph.get_relation_map("authors", "jane")
    relation_map.referenced_by[0].entry = Entry("blog", "post1", {})

    fresh = graph.get_relation_map("authors", "jane")
    assert fresh.referenced_by[0].entry is None
    assert graph.get_relation_map("authors", "ghost") is None


async def test_stats(store):
    graph = await build_relationship_graph(store)
    stats = graph.stats()

    assert stats["total_entries"] == 9
    assert stats["collections"] == ["authors", "blog", "services"]
    assert stats["by_collection"] == {"authors": 2, "blog": 3, "services": 4}
    assert stats["forward_edges"] == 6
    assert stats["backward_edges"] == 6
    assert stats["hierarchy_links"] == 3
    assert graph.entries_in("authors") == [("authors", "jane"), ("authors", "john")]


async def test_edge_indexes_do_not_share_relations_with_maps(engine):
    graph = await engine.get_or_build_graph()

    await engine.resolve_relations(graph.forward_edges[("blog", "post1")])

    assert graph.get_relation_map("blog", "post1").references[0].entry is None
    assert graph.get_relation_map("authors", "jane").referenced_by[0].entry is None


async def test_edge_accessors_return_copies(engine):
    graph = await engine.get_or_build_graph()

    references = graph.get_forward_edges("blog", "post2")
    await engine.resolve_relations(references)

    assert references[0].entry.title == "John Smith"
    assert all(r.entry is None for r in graph.forward_edges[("blog", "post2")])
    assert [r.id for r in graph.get_backward_edges("authors", "jane")] == ["post1", "post3"]
    assert graph.get_forward_edges("authors", "ghost") == []
