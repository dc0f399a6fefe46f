#!/usr/bin/env python3
"""
tabledump CLI Main Application

Typer-based command-line interface for exporting database tables to JSON,
delimited text, embedded databases and Parquet.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from tabledump.cli import __version__
from tabledump.cli.commands import download, schema
from tabledump.cli.config_utils import CLIState
from tabledump.cli.utils import setup_logging
from tabledump.core.config import ConfigManager

console = Console()

# Create main Typer application
app = typer.Typer(
    name="tabledump",
    help="Export database tables to JSON, CSV, TSV, SQLite, DuckDB or Parquet",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command("download")(download.download)
app.command("tables")(schema.list_tables)
app.command("fields")(schema.list_fields)
app.command("query")(schema.show_query)


def version_callback(value: bool):
    """Show version information."""
    if value:
        console.print(f"[bold cyan]tabledump[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def app_callback(
    ctx: typer.Context,
    server: Annotated[Optional[str], typer.Option("--server", help="Database server [env: MSSQL_SERVER]")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Database port [env: MSSQL_PORT]")] = None,
    user: Annotated[Optional[str], typer.Option("--user", help="Database user [env: MSSQL_USER]")] = None,
    password: Annotated[Optional[str], typer.Option("--password", help="Database password [env: MSSQL_PASSWORD]")] = None,
    database: Annotated[Optional[str], typer.Option("--database", help="Database name [env: MSSQL_DATABASE]")] = None,
    url: Annotated[Optional[str], typer.Option("--url", help="SQLAlchemy URL, overrides the settings above")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="Configuration file path")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose", "-v", help="Enable debug logging")] = None,
    quiet: Annotated[Optional[bool], typer.Option("--quiet", "-q", help="Hide progress and summaries")] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version", callback=version_callback, is_eager=True,
        help="Show version information and exit")] = None,
):
    """
    tabledump - Database Table Exporter

    Connection settings come from the options below, MSSQL_* environment
    variables, a .env file in the working directory or a config file.

    [bold]Quick Start:[/bold]

    • List tables: [cyan]tabledump tables[/cyan]
    • List columns: [cyan]tabledump fields Customers[/cyan]
    • Export to CSV: [cyan]tabledump download Customers --format csv[/cyan]
    • Export to Parquet: [cyan]tabledump download Customers --fields cols.txt --format parquet[/cyan]
    """
    setup_logging(verbose=bool(verbose), quiet=bool(quiet))
    ctx.obj = CLIState(
        config_file=config,
        cli_args={
            "server": server,
            "port": port,
            "user": user,
            "password": password,
            "database": database,
            "url": url,
            "verbose": verbose,
            "quiet": quiet,
        },
    )


@app.command("version")
def show_version():
    """Show version information."""
    version_callback(True)


@app.command("init-config")
def init_config(
    path: Annotated[Path, typer.Argument(help="Where to write the example configuration")] = Path("tabledump.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
):
    """Write an example configuration file with the default settings."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists; use --force to overwrite[/yellow]")
        raise typer.Exit(1)
    ConfigManager(dotenv_file=None).create_example_config(path)
    console.print(f"[green]Example configuration written to {path}[/green]", soft_wrap=True)


def main():
    """Entry point for the tabledump console script."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
