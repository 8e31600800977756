"""Shared CLI utilities for Calliope."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from calliope.config import EnvironmentSettings

# Single console instance reused across CLI modules
console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging from ``--verbose`` or ``CALLIOPE_LOG_LEVEL``."""
    level = logging.DEBUG if verbose else EnvironmentSettings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def rows_table(rows: List[Dict[str, Any]], title: str | None = None) -> Table:
    """Render query rows as a rich table."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    columns = list(rows[0].keys()) if rows else []
    for column in columns:
        table.add_column(str(column), style="cyan")
    for row in rows:
        table.add_row(*["" if row.get(column) is None else str(row.get(column)) for column in columns])
    return table


def print_exception(message: str, error: Exception, verbose: bool = False) -> None:
    """Render a formatted exception message.

    Args:
        message: Friendly context message to display before the exception.
        error: Original exception instance.
        verbose: When True, render the full traceback for debugging.
    """
    console.print(f"[red]{message}: {error}[/red]")
    if verbose:
        import traceback

        console.print(f"[dim]{traceback.format_exc()}[/dim]")
