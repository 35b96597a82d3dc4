"""CLI commands for querying content."""

from __future__ import annotations

import asyncio
import json as json_module

import click
from rich.console import Console
from rich.table import Table

from contentgraph.content.entry import json_default
from contentgraph.core.errors import ContentGraphError

console = Console()


def _coerce_value(value: str):
    """Coerce a string value to its most specific Python type.

    ``"true"``/``"false"`` -> ``bool``; integers; floats; else ``str``.
    """
    low = value.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _split_pair(raw: str, option: str) -> tuple[str, str]:
    if "=" not in raw:
        raise click.BadParameter(f"expected FIELD=VALUE, got {raw!r}", param_hint=option)
    field, value = raw.split("=", 1)
    return field.strip(), value


def _engine(include_drafts: bool = False):
    from contentgraph.engine import ContentGraph

    try:
        return ContentGraph.from_site(include_drafts=include_drafts or None)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@click.group(name="query")
def query() -> None:
    """Query content collections."""
    pass


@query.command(name="run")
@click.argument("collections", nargs=-1, required=True)
@click.option("--where", "wheres", multiple=True, help="FIELD=VALUE equality filter")
@click.option("--contains", "containss", multiple=True, help="FIELD=TEXT substring/member filter")
@click.option("--sort", "sorts", multiple=True, help="FIELD or FIELD:desc (repeatable)")
@click.option("--limit", type=int, default=None, help="Page size")
@click.option("--offset", type=int, default=0, help="Entries to skip")
@click.option("--relations", "with_relations", is_flag=True, help="Include relation maps")
@click.option("--include-drafts", is_flag=True, help="Include drafts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def run_cmd(
    collections: tuple[str, ...],
    wheres: tuple[str, ...],
    containss: tuple[str, ...],
    sorts: tuple[str, ...],
    limit: int | None,
    offset: int,
    with_relations: bool,
    include_drafts: bool,
    as_json: bool,
) -> None:
    """Query one or more collections.

    \b
    Examples:
        cg query run blog --where status=published --sort publishDate:desc --limit 10
        cg query run blog services --contains tags=python --json
    """
    from contentgraph.query.filters import where_contains, where_equals
    from contentgraph.query.sorting import SortConfig

    engine = _engine(include_drafts)
    try:
        q = engine.query(collections)
        for raw in wheres:
            field, value = _split_pair(raw, "--where")
            q.where(where_equals(field, _coerce_value(value)))
        for raw in containss:
            field, value = _split_pair(raw, "--contains")
            q.where(where_contains(field, value, case_sensitive=False))
        for raw in sorts:
            field, _, direction = raw.partition(":")
            q.order_by(SortConfig(field=field, direction=direction or "asc"))
        if limit is not None:
            q.limit(limit)
        if offset:
            q.offset(offset)
        if with_relations:
            q.with_relations()

        result = asyncio.run(q.get())
    except ContentGraphError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    if as_json:
        click.echo(json_module.dumps(result.to_dict(), indent=2, default=json_default))
        return

    if not result.entries:
        console.print(f"[yellow]No entries found ({result.total} matched).[/yellow]")
        return

    table = Table(title=f"Results ({len(result.entries)} of {result.total})")
    table.add_column("Collection", style="cyan")
    table.add_column("ID")
    table.add_column("Title")
    if result.relations is not None:
        table.add_column("Refs", justify="right", style="dim")
        table.add_column("Ref'd by", justify="right", style="dim")

    for entry in result.entries:
        row = [entry.collection, entry.id, entry.title]
        if result.relations is not None:
            relation_map = result.relations[f"{entry.collection}:{entry.id}"]
            row += [str(len(relation_map.references)), str(len(relation_map.referenced_by))]
        table.add_row(*row)

    console.print(table)
    if result.page is not None:
        console.print(
            f"[dim]Page {result.page} · has next: {result.has_next} · has prev: {result.has_prev}[/dim]"
        )


@query.command(name="resolve")
@click.argument("collection")
@click.argument("entry_id")
@click.option("--max-depth", type=int, default=None, help="Reference resolution depth")
def resolve_cmd(collection: str, entry_id: str, max_depth: int | None) -> None:
    """Print an entry's data with references resolved, as JSON.

    \b
    Examples:
        cg query resolve blog post1
    """
    engine = _engine()

    async def _resolve():
        entry = await engine.find(collection, entry_id)
        if entry is None:
            return None
        return await engine.process_data_for_references(entry.data, max_depth=max_depth)

    data = asyncio.run(_resolve())
    if data is None:
        console.print(f"[red]Entry not found: {collection}/{entry_id}[/red]")
        raise SystemExit(1)

    click.echo(json_module.dumps(data, indent=2, default=json_default))
