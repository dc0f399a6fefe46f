"""
Download Command

Exports one table from the source database to a file or embedded database
in the requested format.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from tabledump.cli.config_utils import get_state, print_config_summary
from tabledump.cli.error_handling import add_missing_table_hint, handle_error
from tabledump.cli.observers.progress import ProgressDisplay, create_progress
from tabledump.cli.utils import (
    console, err_console, handle_keyboard_interrupt, open_source, validate_positive_int
)
from tabledump.core.exceptions import TableDumpError
from tabledump.exporters.base import list_formats, read_answer, resolve_format
from tabledump.orchestrator import TableExporter


def download(
    ctx: typer.Context,
    table: Annotated[str, typer.Argument(help="Table to download")],
    fields: Annotated[Optional[Path], typer.Option(
        "--fields", "-f", help="File with one column name per line")] = None,
    format_name: Annotated[Optional[str], typer.Option(
        "--format", help=f"Output format: {', '.join(list_formats())}")] = None,
    output_dir: Annotated[Optional[Path], typer.Option(
        "--output-dir", "-o", help="Directory for the output file")] = None,
    batch_size: Annotated[Optional[int], typer.Option(
        "--batch-size", callback=validate_positive_int,
        help="Rows per transaction or row group")] = None,
):
    """
    Download a table to a file.

    Formats: [cyan]json[/cyan] (default), [cyan]csv[/cyan] ("||" separated),
    [cyan]tsv[/cyan], [cyan]sqlite3[/cyan], [cyan]duckdb[/cyan] and
    [cyan]parquet[/cyan] (requires --fields).
    """
    state = get_state(ctx)
    config = state.load_config(output_dir=output_dir, batch_size=batch_size)
    info = resolve_format(format_name or config.output.default_format)

    if not config.quiet:
        print_config_summary(config, table, info.name)

    display = ProgressDisplay.NONE if config.quiet else ProgressDisplay.RICH
    try:
        with open_source(config.connection) as source:
            exporter = TableExporter(
                source,
                config.output,
                progress_factory=lambda: create_progress(display, err_console),
                prompt=read_answer,
            )
            outcome = exporter.export(table, fields, info.name)
    except TableDumpError as e:
        add_missing_table_hint(e, table)
        handle_error(e)
    except KeyboardInterrupt:
        handle_keyboard_interrupt()

    if outcome.declined:
        console.print("Aborted by user.")
        return

    console.print(
        f"[green]Table '{table}' data written to {outcome.destination}[/green] "
        f"({outcome.rows_written:,} rows in {outcome.elapsed:.2f}s)",
        soft_wrap=True,
    )
