"""Tests for relationship graph construction."""

import pytest
from conftest import ref

from contentgraph.content.entry import Entry
from contentgraph.content.store import InMemoryContentStore
from contentgraph.graph.builder import (
    GraphBuilder,
    build_relationship_graph,
    iter_references,
    parent_key,
)
from contentgraph.graph.models import GraphOptions, RelationType


def _keys(relations):
    return [r.key for r in relations]


def test_iter_references_uses_dotted_paths():
    data = {
        "author": ref("authors", "jane"),
        "seo": {"image": ref("images", "hero")},
        "blocks": [{"link": ref("blog", "b")}],
        "title": "ignored",
    }
    assert list(iter_references(data)) == [
        ("author", ("authors", "jane")),
        ("seo.image", ("images", "hero")),
        ("blocks.link", ("blog", "b")),
    ]


def test_parent_key():
    assert parent_key(Entry("services", "a", {"parent": "web"}), "parent") == ("services", "web")
    assert parent_key(Entry("services", "a", {"parent": ref("pages", "x")}), "parent") == ("pages", "x")
    assert parent_key(Entry("services", "a", {}), "parent") is None
    assert parent_key(Entry("services", "a", {"parent": ""}), "parent") is None


class TestForwardAndBackwardEdges:

    async def test_forward_edges(self, store):
        graph = await build_relationship_graph(store)
        assert graph.edge_set() == {
            (("blog", "post1"), "author", ("authors", "jane")),
            (("blog", "post2"), "author", ("authors", "john")),
            (("blog", "post2"), "related", ("blog", "post1")),
            (("blog", "post2"), "services", ("services", "web-development")),
            (("blog", "post3"), "authors", ("authors", "jane")),
            (("blog", "post3"), "authors", ("authors", "ghost")),
        }

    async def test_backward_edges_mirror_forward_edges(self, store):
        graph = await build_relationship_graph(store)
        mirrored = {
            (target, relation.field, relation.key)
            for target, relations in graph.backward_edges.items()
            for relation in relations
        }
        assert mirrored == {(t, f, s) for s, f, t in graph.edge_set()}

    async def test_referenced_by(self, store):
        graph = await build_relationship_graph(store)
        jane = graph.get_relation_map("authors", "jane")
        assert _keys(jane.referenced_by) == [("blog", "post1"), ("blog", "post3")]
        assert [r.field for r in jane.referenced_by] == ["author", "authors"]
        assert all(r.type is RelationType.REFERENCED_BY for r in jane.referenced_by)

    async def test_dangling_reference_is_kept_and_logged(self, store, caplog):
        graph = await build_relationship_graph(store)
        post3 = graph.get_relation_map("blog", "post3")
        assert ("authors", "ghost") in _keys(post3.references)
        assert not graph.has_entry("authors", "ghost")
        assert "Dangling reference authors/ghost" in caplog.text

    async def test_no_self_loops_and_no_duplicates(self):
        store = InMemoryContentStore([
            Entry("blog", "a", {
                "related": [ref("blog", "a"), ref("blog", "b"), ref("blog", "b")],
            }),
            Entry("blog", "b", {}),
        ])
        graph = await build_relationship_graph(store)
        assert graph.edge_set() == {(("blog", "a"), "related", ("blog", "b"))}

    async def test_parent_field_is_not_a_reference(self, store):
        graph = await build_relationship_graph(store)
        react = graph.get_relation_map("services", "react")
        assert react.references == []

    async def test_build_is_idempotent(self, store):
        first = await build_relationship_graph(store)
        second = await build_relationship_graph(store)
        assert first.edge_set() == second.edge_set()
        assert first.stats()["backward_edges"] == second.stats()["backward_edges"]

    async def test_store_failure_propagates(self, store):
        class BrokenStore(InMemoryContentStore):
            async def list_entries(self, collection):
                raise OSError("disk gone")

        with pytest.raises(OSError):
            await build_relationship_graph(BrokenStore([Entry("blog", "a", {})]))


class TestHierarchy:

    async def test_parent_and_children(self, store):
        graph = await build_relationship_graph(store)
        frontend = graph.get_relation_map("services", "frontend-dev")

        assert frontend.parent.key == ("services", "web-development")
        assert frontend.parent.type is RelationType.PARENT
        assert _keys(frontend.children) == [("services", "react")]
        assert _keys(frontend.siblings) == [("services", "backend-dev")]

    async def test_ancestors_nearest_first(self, store):
        graph = await build_relationship_graph(store)
        react = graph.get_relation_map("services", "react")
        assert [(r.key, r.depth) for r in react.ancestors] == [
            (("services", "frontend-dev"), 1),
            (("services", "web-development"), 2),
        ]

    async def test_descendants_with_depth(self, store):
        graph = await build_relationship_graph(store)
        root = graph.get_relation_map("services", "web-development")
        assert [(r.key, r.depth) for r in root.descendants] == [
            (("services", "frontend-dev"), 1),
            (("services", "backend-dev"), 1),
            (("services", "react"), 2),
        ]
        assert root.parent is None
        assert root.ancestors == []

    async def test_missing_and_self_parents_become_roots(self, caplog):
        store = InMemoryContentStore([
            Entry("pages", "a", {"parent": "nowhere"}),
            Entry("pages", "b", {"parent": "b"}),
        ])
        graph = await build_relationship_graph(store)
        assert graph.hierarchy_index[("pages", "a")].parent is None
        assert graph.hierarchy_index[("pages", "b")].parent is None
        assert "Missing parent pages/nowhere" in caplog.text

    async def test_parent_cycle_terminates(self):
        store = InMemoryContentStore([
            Entry("pages", "a", {"parent": "b"}),
            Entry("pages", "b", {"parent": "a"}),
        ])
        graph = await build_relationship_graph(store)
        a = graph.get_relation_map("pages", "a")
        assert _keys(a.ancestors) == [("pages", "b")]
        assert _keys(a.descendants) == [("pages", "b")]

    async def test_custom_parent_field(self):
        store = InMemoryContentStore([
            Entry("docs", "intro", {}),
            Entry("docs", "setup", {"section": "intro"}),
        ])
        graph = await build_relationship_graph(store, GraphOptions(parent_field="section"))
        assert graph.get_relation_map("docs", "setup").parent.key == ("docs", "intro")


class TestIndirectRelations:

    async def test_disabled_by_default(self, store):
        graph = await build_relationship_graph(store)
        assert all(not m.indirect for m in graph.relation_maps.values())

    async def test_indirect_from_author(self, store):
        graph = await build_relationship_graph(store, GraphOptions(include_indirect=True))
        jane = graph.get_relation_map("authors", "jane")
        assert sorted((r.key, r.depth) for r in jane.indirect) == [
            (("authors", "john"), 3),
            (("blog", "post2"), 2),
            (("services", "web-development"), 3),
        ]

    async def test_depth_bound(self, store):
        options = GraphOptions(include_indirect=True, max_indirect_depth=2)
        graph = await build_relationship_graph(store, options)
        jane = graph.get_relation_map("authors", "jane")
        assert [(r.key, r.depth) for r in jane.indirect] == [(("blog", "post2"), 2)]
        for relation_map in graph.relation_maps.values():
            assert all(2 <= r.depth <= 2 for r in relation_map.indirect)

    async def test_indirect_excludes_direct_relations(self, store):
        graph = await build_relationship_graph(store, GraphOptions(include_indirect=True))
        for relation_map in graph.relation_maps.values():
            direct = {
                r.key for r in relation_map.all_relations() if r.type is not RelationType.INDIRECT
            }
            indirect = {r.key for r in relation_map.indirect}
            assert not direct & indirect
            assert relation_map.key not in indirect

    async def test_indirect_skips_missing_entries(self, store):
        graph = await build_relationship_graph(store, GraphOptions(include_indirect=True))
        for relation_map in graph.relation_maps.values():
            assert ("authors", "ghost") not in {r.key for r in relation_map.indirect}

    async def test_max_depth_below_two_computes_nothing(self, store):
        options = GraphOptions(include_indirect=True, max_indirect_depth=1)
        graph = await GraphBuilder(store, options).build()
        assert graph.stats()["indirect_relations"] == 0
