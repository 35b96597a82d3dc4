"""
Content stores.

The engine consumes content through the ``ContentStore`` protocol. Two
implementations ship here: an in-memory store and a store that scans a
site's content directory (one subdirectory per collection).
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import frontmatter
import yaml

from contentgraph.content.entry import CollectionMeta, Entry, Reference
from contentgraph.core.errors import MissingCollectionError
from contentgraph.references.detector import tag_references

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".mdx")
DATA_SUFFIXES = (".yaml", ".yml", ".json")
META_STEM = "_meta"


@runtime_checkable
class ContentStore(Protocol):
    """Source of content entries.

    ``list_entries`` raises ``MissingCollectionError`` for a collection the
    store does not know. ``get_entry`` returns None for a missing entry.
    """

    async def list_collections(self) -> list[str]:
        ...

    async def list_entries(self, collection: str) -> list[Entry]:
        ...

    async def get_entry(self, collection: str, entry_id: str) -> Entry | None:
        ...

    async def get_collection_meta(self, collection: str) -> CollectionMeta:
        ...


class InMemoryContentStore:
    """Content store backed by a list of entries."""

    def __init__(
        self,
        entries: Iterable[Entry] = (),
        metas: Iterable[CollectionMeta] = (),
        collections: Iterable[str] = (),
    ):
        self._collections: dict[str, dict[str, Entry]] = {name: {} for name in collections}
        for entry in entries:
            self._collections.setdefault(entry.collection, {})[entry.id] = entry
        self._metas = {meta.name: meta for meta in metas}

    async def list_collections(self) -> list[str]:
        return list(self._collections)

    async def list_entries(self, collection: str) -> list[Entry]:
        if collection not in self._collections:
            raise MissingCollectionError(collection)
        return list(self._collections[collection].values())

    async def get_entry(self, collection: str, entry_id: str) -> Entry | None:
        return self._collections.get(collection, {}).get(entry_id)

    async def get_collection_meta(self, collection: str) -> CollectionMeta:
        return self._metas.get(collection) or CollectionMeta(name=collection)


class FileContentStore:
    """Content store that scans a site's content directory.

    Handles:
    - Leaf bundles: slug/index.md
    - Branch bundles: slug/_index.md
    - Single files: slug.md / slug.mdx
    - Data files: slug.yaml / slug.yml / slug.json
    - Collection metadata: _meta.md, _meta.mdx or _meta.yaml
    """

    def __init__(
        self,
        site_root: Path,
        content_dir: str = "content",
        include_drafts: bool = False,
    ):
        """Initialize store.

        Args:
            site_root: Site root directory
            content_dir: Content directory relative to the site root
            include_drafts: Include entries marked ``draft: true``
        """
        self.site_root = Path(site_root)
        self.content_root = self.site_root / content_dir
        self.include_drafts = include_drafts
        self._entries: dict[str, dict[str, Entry]] | None = None
        self._metas: dict[str, CollectionMeta] = {}
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, dict[str, Entry]]:
        # Content is static for the life of the process: scan once.
        if self._entries is None:
            async with self._lock:
                if self._entries is None:
                    self._entries = await asyncio.to_thread(self._scan)
        return self._entries

    async def list_collections(self) -> list[str]:
        return list(await self._load())

    async def list_entries(self, collection: str) -> list[Entry]:
        entries = await self._load()
        if collection not in entries:
            raise MissingCollectionError(collection)
        return list(entries[collection].values())

    async def get_entry(self, collection: str, entry_id: str) -> Entry | None:
        entries = await self._load()
        return entries.get(collection, {}).get(entry_id)

    async def get_collection_meta(self, collection: str) -> CollectionMeta:
        await self._load()
        return self._metas.get(collection) or CollectionMeta(name=collection)

    def _scan(self) -> dict[str, dict[str, Entry]]:
        """Scan every collection directory under the content root."""
        result: dict[str, dict[str, Entry]] = {}
        if not self.content_root.is_dir():
            logger.warning("Content directory not found: %s", self.content_root)
            return result

        for directory in sorted(self.content_root.iterdir()):
            if not directory.is_dir() or directory.name.startswith((".", "_")):
                continue
            name = directory.name
            meta = self._load_meta(directory, name)
            self._metas[name] = meta

            collection: dict[str, Entry] = {}
            for entry in self._scan_directory(directory, meta):
                if entry.is_draft and not self.include_drafts:
                    continue
                if entry.id in collection:
                    logger.warning("Duplicate id %s in collection %s", entry.id, name)
                    continue
                collection[entry.id] = entry
            result[name] = collection

        return result

    def _load_meta(self, directory: Path, name: str) -> CollectionMeta:
        for suffix in MARKDOWN_SUFFIXES:
            path = directory / f"{META_STEM}{suffix}"
            if path.is_file():
                try:
                    return CollectionMeta.from_dict(name, dict(frontmatter.load(path).metadata))
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Error parsing %s: %s", path, e)
                    return CollectionMeta(name=name)
        for suffix in (".yaml", ".yml"):
            path = directory / f"{META_STEM}{suffix}"
            if path.is_file():
                try:
                    data = yaml.safe_load(path.read_text(encoding="utf-8"))
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Error parsing %s: %s", path, e)
                    data = None
                return CollectionMeta.from_dict(name, data if isinstance(data, dict) else {})
        return CollectionMeta(name=name)

    def _scan_directory(self, directory: Path, meta: CollectionMeta) -> Iterator[Entry]:
        for path in sorted(directory.rglob("*")):
            if path.is_dir() or path.is_symlink():
                continue
            if path.name.startswith(".") or path.stem == META_STEM:
                continue
            if path.suffix not in MARKDOWN_SUFFIXES + DATA_SUFFIXES:
                continue

            # Determine id
            if path.stem in ("index", "_index"):
                if path.parent == directory:
                    continue
                entry_id = path.parent.name
            else:
                entry_id = path.stem

            try:
                entry = self._parse_file(path, entry_id, meta)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("Error parsing %s: %s", path, e)
                continue
            if entry is not None:
                yield entry

    def _parse_file(self, path: Path, entry_id: str, meta: CollectionMeta) -> Entry | None:
        body = ""
        if path.suffix in MARKDOWN_SUFFIXES:
            post = frontmatter.load(path)
            data: Any = dict(post.metadata)
            body = post.content
        elif path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))

        if not isinstance(data, dict):
            logger.warning("Skipping %s: data is not a mapping", path)
            return None

        entry_id = str(data.pop("id", entry_id)) if path.suffix in DATA_SUFFIXES else entry_id
        return Entry(
            collection=meta.name,
            id=entry_id,
            data=_tag_declared_references(tag_references(data), meta),
            body=body,
        )


def _tag_declared_references(data: dict[str, Any], meta: CollectionMeta) -> dict[str, Any]:
    """Convert plain string ids in declared reference fields into ``Reference``s."""
    for field_name, target in meta.references.items():
        value = data.get(field_name)
        if isinstance(value, str):
            data[field_name] = Reference(collection=target, id=value)
        elif isinstance(value, list):
            data[field_name] = [
                Reference(collection=target, id=item) if isinstance(item, str) else item
                for item in value
            ]
    return data
