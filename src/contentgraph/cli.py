"""
Main CLI dispatcher for cg.

Usage:
    cg init                              # Initialize .contentgraph/ directory
    cg graph [build|relations]
    cg query [run|resolve]
"""

import logging

import click
from rich.console import Console

from contentgraph import __version__

console = Console()


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.console = console


@click.group()
@click.version_option(version=__version__, prog_name="cg")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Content relationship graph and query tools.

    Inspect references, hierarchy and query results for a content site.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj = Context(verbose=verbose)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing config.yaml")
def init(force: bool) -> None:
    """Initialize .contentgraph/ directory in the current directory.

    Creates .contentgraph/config.yaml with the default settings.
    """
    from pathlib import Path

    from contentgraph.core.config import STATE_DIR_NAME, default_config_yaml

    site_root = Path.cwd()
    state_dir = site_root / STATE_DIR_NAME
    config_file = state_dir / "config.yaml"

    if config_file.exists() and not force:
        console.print(f"[yellow]{STATE_DIR_NAME}/ already initialized at {state_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    state_dir.mkdir(parents=True, exist_ok=True)
    config_file.write_text(default_config_yaml(), encoding="utf-8")
    console.print(f"  [green]Created[/green] {config_file.relative_to(site_root)}")
    console.print("[green]Done![/green]")


# Import and register command groups (imports after main definition intentional)
from contentgraph.graph.commands import graph  # noqa: E402
from contentgraph.query.commands import query  # noqa: E402

main.add_command(graph)
main.add_command(query)


if __name__ == "__main__":
    main()
