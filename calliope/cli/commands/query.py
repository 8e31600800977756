"""Commands that run and inspect declared queries."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import click
from rich.table import Table

from calliope.cli.utils import console, print_exception, rows_table
from calliope.config import get_config, load_query_descriptors
from calliope.db import Db, create_adapter
from calliope.exceptions import CalliopeError, ConfigurationError


def _build_db(ctx: click.Context) -> Db:
    config = get_config(ctx.obj.get('config'), reload=True)
    if not config.queries:
        raise ConfigurationError("No 'queries' descriptor file configured")
    descriptors = load_query_descriptors(config.queries)
    adapter = create_adapter(config, ctx.obj.get('db'))
    return Db(descriptors, adapter)


async def _run_query(db: Db, name: str, values: Any) -> Any:
    try:
        return await getattr(db, name)(values)
    finally:
        await db.adapter.close()


def _parse_values(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}") from exc


@click.command(name="query")
@click.argument("name")
@click.option("--values", "values", callback=_parse_values,
              help="Query values as JSON: an object for INSERT/UPDATE, a list for positional parameters")
@click.pass_context
def query_command(ctx: click.Context, name: str, values: Any) -> None:
    """Run a declared query and print its result."""
    verbose = ctx.obj.get('verbose', False)
    try:
        db = _build_db(ctx)
        if name not in db.queries and name not in db.query_errors:
            raise ConfigurationError(f"Unknown query '{name}'. Declared queries: {sorted(db.queries)}")
        result = asyncio.run(_run_query(db, name, values))
    except CalliopeError as exc:
        print_exception("Query failed", exc, verbose)
        raise SystemExit(1) from exc

    if isinstance(result, list):
        console.print(rows_table(result, title=name))
        console.print(f"{len(result)} row(s)")
    else:
        console.print(f"Result: [green]{result}[/green]")


@click.command(name="queries")
@click.pass_context
def queries_command(ctx: click.Context) -> None:
    """List declared queries and descriptors that failed to build."""
    try:
        db = _build_db(ctx)
    except CalliopeError as exc:
        print_exception("Could not load queries", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Query", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Table", style="yellow")
    for name, function in db.queries.items():
        descriptor = function.descriptor
        table.add_row(name, descriptor.type.value, descriptor.table or "")
    console.print(table)

    for name, error in db.query_errors.items():
        console.print(f"[red]{name}: {error}[/red]")
    if db.query_errors:
        raise SystemExit(1)
