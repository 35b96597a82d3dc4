"""Tests for the top-level cg command."""

import yaml
from click.testing import CliRunner

from contentgraph import __version__
from contentgraph.cli import main


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_creates_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["init"])

    assert result.exit_code == 0, result.output
    config = yaml.safe_load((tmp_path / ".contentgraph" / "config.yaml").read_text())
    assert config["content_dir"] == "content"
    assert config["graph"]["parent_field"] == "parent"


def test_init_refuses_to_overwrite(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    state_dir = tmp_path / ".contentgraph"
    state_dir.mkdir()
    (state_dir / "config.yaml").write_text("content_dir: src\n")

    result = CliRunner().invoke(main, ["init"])
    assert result.exit_code == 0
    assert "already initialized" in result.output
    assert (state_dir / "config.yaml").read_text() == "content_dir: src\n"

    result = CliRunner().invoke(main, ["init", "--force"])
    assert result.exit_code == 0
    assert "content_dir: content" in (state_dir / "config.yaml").read_text()
