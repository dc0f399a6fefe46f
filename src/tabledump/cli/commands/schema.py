"""
Schema Commands

Diagnostic commands that list the tables of the source database, the
columns of one table, and the SELECT a download would run.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from tabledump.cli.config_utils import get_state
from tabledump.cli.error_handling import add_missing_table_hint, handle_error
from tabledump.cli.utils import console, open_source
from tabledump.core.exceptions import TableDumpError
from tabledump.query import build_query


def list_tables(ctx: typer.Context):
    """List the tables of the source database."""
    config = get_state(ctx).load_config()
    try:
        with open_source(config.connection) as source:
            tables = source.list_tables()
    except TableDumpError as e:
        handle_error(e)

    if not tables:
        console.print("[yellow]No tables found[/yellow]")
        return

    table = Table(title="Tables")
    table.add_column("Name", style="cyan")
    for name in tables:
        table.add_row(name)
    console.print(table)


def list_fields(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table whose columns to list")],
):
    """List the columns of a table in ordinal order."""
    config = get_state(ctx).load_config()
    try:
        with open_source(config.connection) as source:
            fields = source.list_fields(table_name)
    except TableDumpError as e:
        add_missing_table_hint(e, table_name)
        handle_error(e)

    if not fields:
        console.print(f"[yellow]No fields found for table '{table_name}'[/yellow]")
        return

    table = Table(title=f"Fields of {table_name}")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Nullable")
    for field in fields:
        table.add_row(field["name"], field["type"], "yes" if field["nullable"] else "no")
    console.print(table)


def show_query(
    table_name: Annotated[str, typer.Argument(help="Table to select from")],
    fields: Annotated[Optional[Path], typer.Option(
        "--fields", "-f", help="File with one column name per line")] = None,
):
    """Print the SELECT statement a download would run."""
    try:
        query = build_query(table_name, fields)
    except TableDumpError as e:
        handle_error(e)
    console.print(query, markup=False, highlight=False, soft_wrap=True)
