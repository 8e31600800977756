"""``calliope config``: check and scaffold configuration and descriptor files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import click
from rich.table import Table

from calliope.cli.utils import console
from calliope.config import (
    CalliopeConfig,
    DatabaseConfig,
    create_sample_config,
    create_sample_queries,
    get_config,
    load_query_descriptors,
)
from calliope.db.descriptors import to_descriptor
from calliope.exceptions import ConfigurationError, ValidationError


def _describe_target(database: DatabaseConfig) -> str:
    if database.path:
        return database.path
    port = f":{database.port}" if database.port else ""
    return f"{database.username}@{database.host}{port}/{database.database}"


def _databases_table(config: CalliopeConfig) -> Table:
    table = Table(title="Databases", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Target", style="yellow")
    table.add_column("SQL logging")
    for name, database in config.databases.items():
        logging_mode = "sql + parameters" if database.log_parameters else ("sql" if database.log_sql else "off")
        table.add_row(name, database.type.value, _describe_target(database), logging_mode)
    return table


def _check_descriptors(path: str) -> Dict[str, ValidationError]:
    """Validate every descriptor in ``path`` without connecting to a database."""
    errors: Dict[str, ValidationError] = {}
    seen: List[str] = []
    for entry in load_query_descriptors(path):
        name = entry['name']
        try:
            to_descriptor(entry)
        except ValidationError as exc:
            errors[name] = exc
            continue
        if name in seen:
            errors[name] = ValidationError(f"Duplicate query name '{name}'", query=name)
            continue
        seen.append(name)
    console.print(f"Query descriptors: [cyan]{path}[/cyan]")
    console.print(f"{len(seen)} valid, {len(errors)} invalid")
    return errors


@click.group(name="config")
def config_group() -> None:
    """Check and scaffold configuration files."""
    pass


@config_group.command(name="validate")
@click.argument("config_file", type=click.Path(exists=True), required=False)
@click.pass_context
def validate_command(ctx: click.Context, config_file: str | None) -> None:
    """Validate a configuration file and the query descriptors it points at.

    Defaults to the global --config option, then the standard locations.
    """
    config_file = config_file or (ctx.obj or {}).get('config')
    try:
        config = get_config(config_file, reload=True)
        console.print(_databases_table(config))
        console.print(f"Default database: [cyan]{config.default_database}[/cyan]")

        if not config.queries:
            console.print("[yellow]No query descriptor file configured[/yellow]")
            return
        errors = _check_descriptors(config.queries)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration validation failed: {exc}[/red]")
        raise SystemExit(1) from exc

    for name, error in errors.items():
        console.print(f"[red]{name}: {error}[/red]")
    if errors:
        raise SystemExit(1)
    console.print("[green]Configuration is valid[/green]")


@config_group.command(name="sample")
@click.argument("output_file", type=click.Path())
@click.option("--queries/--no-queries", "with_queries", default=True,
              help="Also write a starter queries.yaml next to the configuration")
def sample_command(output_file: str, with_queries: bool) -> None:
    """Write a sample configuration (and descriptor file)."""
    output_path = Path(output_file)
    if output_path.exists():
        click.confirm(f"File '{output_file}' exists. Overwrite?", abort=True)

    queries_path = output_path.parent / "queries.yaml"
    try:
        create_sample_config(output_path)
        console.print(f"[green]Sample configuration created: {output_file}[/green]")
        if with_queries and not queries_path.exists():
            create_sample_queries(queries_path)
            console.print(f"[green]Sample query descriptors created: {queries_path}[/green]")
    except OSError as exc:
        console.print(f"[red]Error creating sample files: {exc}[/red]")
        raise SystemExit(1) from exc

    console.print(f"Check them with [cyan]calliope config validate {output_file}[/cyan]")
