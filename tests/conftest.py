"""Shared test fixtures for contentgraph package."""

from datetime import date
from pathlib import Path

import pytest
import yaml

from contentgraph.content.entry import CollectionMeta, Entry, Reference
from contentgraph.content.store import InMemoryContentStore
from contentgraph.engine import ContentGraph


def ref(collection: str, entry_id: str) -> dict:
    """Untyped reference, as parsed from a content file."""
    return {"collection": collection, "id": entry_id}


@pytest.fixture
def sample_entries():
    """Authors, blog posts and a service hierarchy.

    post3 references a missing author ('ghost').
    """
    return [
        Entry("authors", "jane", {"title": "Jane Doe"}),
        Entry("authors", "john", {"title": "John Smith", "hasPage": False}),
        Entry(
            "blog",
            "post1",
            {
                "title": "Hello World",
                "author": ref("authors", "jane"),
                "publishDate": date(2024, 1, 10),
                "tags": ["python", "astro"],
                "order": 2,
            },
        ),
        Entry(
            "blog",
            "post2",
            {
                "title": "Second Post",
                "author": Reference("authors", "john"),
                "related": [ref("blog", "post1")],
                "services": [ref("services", "web-development")],
                "publishDate": date(2024, 3, 5),
                "tags": ["rust"],
                "order": 1,
            },
        ),
        Entry(
            "blog",
            "post3",
            {
                "title": "Draft Ideas",
                "authors": [ref("authors", "jane"), ref("authors", "ghost")],
                "publishDate": None,
                "order": 2,
            },
        ),
        Entry("services", "web-development", {"title": "Web Development"}),
        Entry("services", "frontend-dev", {"title": "Frontend", "parent": "web-development"}),
        Entry("services", "backend-dev", {"title": "Backend", "parent": "web-development"}),
        Entry("services", "react", {"title": "React", "parent": "frontend-dev"}),
    ]


@pytest.fixture
def store(sample_entries):
    """In-memory store over the sample entries."""
    return InMemoryContentStore(
        sample_entries,
        metas=[CollectionMeta(name="services", items_have_page=False)],
    )


@pytest.fixture
def engine(store):
    """ContentGraph over the sample store with default settings."""
    return ContentGraph(store)


@pytest.fixture
def mock_site_root(tmp_path, monkeypatch):
    """Create a mock site structure with .contentgraph/ directory."""
    state_dir = tmp_path / ".contentgraph"
    state_dir.mkdir()

    for collection in ("authors", "blog", "services"):
        (tmp_path / "content" / collection).mkdir(parents=True)

    monkeypatch.delenv("CONTENTGRAPH_SITE_ROOT", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    # Mock get_site_root to return our tmp_path
    from contentgraph.core import config
    # Clear the lru_cache first
    config.get_site_root.cache_clear()
    monkeypatch.setattr(config, "get_site_root", lambda: tmp_path)

    return tmp_path


@pytest.fixture
def create_content_file(mock_site_root):
    """Factory fixture for creating markdown content files with frontmatter."""
    def _create(
        collection: str = "blog",
        slug: str = "test-post",
        title: str = "Test Post",
        body: str = "Test content.",
        extra_fm: dict | None = None,
        draft: bool = False,
    ) -> Path:
        content_dir = mock_site_root / "content" / collection / slug
        content_dir.mkdir(parents=True, exist_ok=True)

        fm = {"title": title, "draft": draft}
        if extra_fm:
            fm.update(extra_fm)

        fm_str = yaml.dump(fm, default_flow_style=False)
        content = f"---\n{fm_str}---\n\n{body}\n"

        index_file = content_dir / "index.md"
        index_file.write_text(content, encoding="utf-8")
        return index_file

    return _create


@pytest.fixture
def sample_site(create_content_file, mock_site_root):
    """A small site on disk: two authors, two posts and a service tree."""
    create_content_file("authors", "jane", "Jane Doe")
    create_content_file("authors", "john", "John Smith")
    create_content_file(
        "blog", "post1", "Hello World",
        extra_fm={"author": "jane", "publishDate": "2024-01-10", "tags": ["python"]},
    )
    create_content_file(
        "blog", "post2", "Second Post",
        extra_fm={
            "author": "john",
            "related": [ref("blog", "post1")],
            "publishDate": "2024-03-05",
        },
    )
    create_content_file("blog", "wip", "Work In Progress", draft=True)
    create_content_file("services", "web", "Web")
    create_content_file("services", "frontend", "Frontend", extra_fm={"parent": "web"})

    (mock_site_root / "content" / "blog" / "_meta.yaml").write_text(
        yaml.dump({"references": {"author": "authors"}}), encoding="utf-8"
    )
    return mock_site_root
