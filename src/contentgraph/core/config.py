"""
Configuration and path management.

Provides site root detection, standard paths and engine settings.
Uses .contentgraph/ directory for site-local configuration.

Resolution order for site root:
  1. CONTENTGRAPH_SITE_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .contentgraph/ directory
  3. Global config file (~/.config/contentgraph/config.yaml) site_root key
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

STATE_DIR_NAME = ".contentgraph"

DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content",
    "include_drafts": False,
    "graph": {
        "include_indirect": False,
        "max_indirect_depth": 3,
        "parent_field": "parent",
    },
    "references": {
        "max_depth": 3,
        "internal_prefix": "_",
        "title_field": "title",
    },
}


@dataclass(frozen=True)
class SitePaths:
    """Standard paths for the content site."""

    root: Path
    state_dir: Path
    content: Path
    config_file: Path


@dataclass(frozen=True)
class Settings:
    """Engine settings merged from defaults, global and site config."""

    content_dir: str = "content"
    include_drafts: bool = False

    # Graph build
    include_indirect: bool = False
    max_indirect_depth: int = 3
    parent_field: str = "parent"

    # Reference resolution
    max_reference_depth: int = 3
    internal_prefix: str = "_"
    title_field: str = "title"


def get_global_config_path() -> Path:
    """Return the path to the global contentgraph config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/contentgraph/config.yaml.

    Returns:
        Path to global config file (may not exist).
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "contentgraph" / "config.yaml"


def _load_yaml_mapping(path: Path) -> dict:
    """Load a YAML file expected to hold a mapping.

    Returns:
        Mapping, or empty dict if file is missing or invalid.
    """
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def load_global_config() -> dict:
    """Load the global contentgraph configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    return _load_yaml_mapping(get_global_config_path())


def _walk_up_for_state_dir(start_path: Path) -> Path | None:
    """Walk up directory tree looking for .contentgraph/ directory.

    Args:
        start_path: Starting path for search.

    Returns:
        Path to directory containing .contentgraph/, or None if not found.
    """
    current = start_path.resolve()
    while current != current.parent:
        if (current / STATE_DIR_NAME).is_dir():
            return current
        current = current.parent
    return None


def find_site_root(start_path: Path | None = None) -> Path:
    """Find site root using 3-tier resolution.

    Resolution order:
      1. CONTENTGRAPH_SITE_ROOT environment variable (highest priority)
      2. Walk up from start_path (or cwd) looking for .contentgraph/
      3. Global config file site_root key

    Args:
        start_path: Starting path for the directory walk (defaults to cwd)

    Returns:
        Path to site root

    Raises:
        FileNotFoundError: If .contentgraph/ not found by any method
    """
    env_root = os.environ.get("CONTENTGRAPH_SITE_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / STATE_DIR_NAME).is_dir():
            return env_path
        raise FileNotFoundError(
            f"CONTENTGRAPH_SITE_ROOT={env_root} does not contain a {STATE_DIR_NAME}/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_state_dir(Path(start_path))
    if result is not None:
        return result

    global_config = load_global_config()
    site_root_str = global_config.get("site_root")
    if site_root_str:
        global_path = Path(site_root_str).expanduser().resolve()
        if (global_path / STATE_DIR_NAME).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config site_root={site_root_str} does not contain a {STATE_DIR_NAME}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {STATE_DIR_NAME}/ directory starting from {start_path}. "
        f"Run 'cg init' to initialize, set CONTENTGRAPH_SITE_ROOT, or configure "
        f"site_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_site_root() -> Path:
    """Get the cached site root path."""
    return find_site_root()


def get_paths(site_root: Path | None = None) -> SitePaths:
    """Get all standard paths for the site.

    Args:
        site_root: Site root path (uses cached default if not provided)

    Returns:
        SitePaths dataclass with all paths
    """
    if site_root is None:
        site_root = get_site_root()

    site_root = Path(site_root)
    state_dir = site_root / STATE_DIR_NAME
    config = _load_yaml_mapping(state_dir / "config.yaml")

    return SitePaths(
        root=site_root,
        state_dir=state_dir,
        content=site_root / str(config.get("content_dir", DEFAULT_CONFIG["content_dir"])),
        config_file=state_dir / "config.yaml",
    )


def _merge(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(site_root: Path | None = None) -> Settings:
    """Load engine settings.

    Global config is applied over the defaults, then the site's
    .contentgraph/config.yaml over that.

    Args:
        site_root: Site root path. Site-local config is skipped when None.

    Returns:
        Frozen Settings
    """
    config = _merge(DEFAULT_CONFIG, load_global_config())
    if site_root is not None:
        config = _merge(config, _load_yaml_mapping(Path(site_root) / STATE_DIR_NAME / "config.yaml"))

    graph = config.get("graph") or {}
    refs = config.get("references") or {}

    return Settings(
        content_dir=str(config.get("content_dir", "content")),
        include_drafts=bool(config.get("include_drafts", False)),
        include_indirect=bool(graph.get("include_indirect", False)),
        max_indirect_depth=int(graph.get("max_indirect_depth", 3)),
        parent_field=str(graph.get("parent_field", "parent")),
        max_reference_depth=int(refs.get("max_depth", 3)),
        internal_prefix=str(refs.get("internal_prefix", "_")),
        title_field=str(refs.get("title_field", "title")),
    )


def default_config_yaml() -> str:
    """Render the default site config as YAML (written by `cg init`)."""
    return yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False)
