"""CLI commands for the relationship graph."""

from __future__ import annotations

import asyncio
import json as json_module

import click
from rich.console import Console
from rich.table import Table

from contentgraph.content.entry import json_default
from contentgraph.core.errors import ContentGraphError
from contentgraph.graph.models import RelationType

console = Console()

RELATION_TYPES = [t.value for t in RelationType]


def _engine():
    from contentgraph.engine import ContentGraph

    try:
        return ContentGraph.from_site()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@click.group(name="graph")
def graph() -> None:
    """Build and inspect the content relationship graph."""
    pass


@graph.command(name="build")
@click.option("--indirect", is_flag=True, help="Compute indirect (multi-hop) relations")
@click.option("--max-depth", type=int, default=None, help="Max hops for indirect relations")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def build_cmd(indirect: bool, max_depth: int | None, as_json: bool) -> None:
    """Build the graph and show statistics.

    \b
    Examples:
        cg graph build
        cg graph build --indirect --max-depth 2
    """
    engine = _engine()
    options = engine.graph_options(
        include_indirect=True if indirect else None, max_indirect_depth=max_depth
    )
    try:
        built = asyncio.run(engine.build_relationship_graph(options))
    except ContentGraphError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    stats = built.stats()
    if as_json:
        click.echo(json_module.dumps(stats, indent=2))
        return

    table = Table(title=f"Relationship Graph ({stats['total_entries']} entries)")
    table.add_column("Collection", style="cyan")
    table.add_column("Entries", justify="right")
    for name in stats["collections"]:
        table.add_row(name, str(stats["by_collection"].get(name, 0)))
    console.print(table)

    console.print(f"Forward edges:    {stats['forward_edges']}")
    console.print(f"Backward edges:   {stats['backward_edges']}")
    console.print(f"Hierarchy links:  {stats['hierarchy_links']}")
    if options.include_indirect:
        console.print(f"Indirect:         {stats['indirect_relations']}")


@graph.command(name="relations")
@click.argument("collection")
@click.argument("entry_id")
@click.option(
    "--type", "types", multiple=True, type=click.Choice(RELATION_TYPES),
    help="Only show these relation types",
)
@click.option("--indirect", is_flag=True, help="Include indirect relations")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def relations_cmd(
    collection: str, entry_id: str, types: tuple[str, ...], indirect: bool, as_json: bool
) -> None:
    """Show every relation of an entry.

    \b
    Examples:
        cg graph relations authors jane
        cg graph relations blog post1 --type reference --json
    """
    engine = _engine()
    options = engine.graph_options(include_indirect=True if indirect else None)
    try:
        relation_map = asyncio.run(
            engine.relations.get_relations(collection, entry_id, list(types), options=options)
        )
    except ContentGraphError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    if as_json:
        click.echo(json_module.dumps(relation_map.to_dict(), indent=2, default=json_default))
        return

    relations = relation_map.all_relations()
    if not relations:
        console.print(f"[yellow]No relations for {collection}/{entry_id}[/yellow]")
        return

    table = Table(title=f"Relations of {collection}/{entry_id} ({len(relations)})")
    table.add_column("Type", style="cyan")
    table.add_column("Target")
    table.add_column("Field", style="dim")
    table.add_column("Depth", justify="right", style="dim")
    for relation in relations:
        table.add_row(
            relation.type.value,
            f"{relation.collection}/{relation.id}",
            relation.field or "",
            str(relation.depth) if relation.depth is not None else "",
        )
    console.print(table)
