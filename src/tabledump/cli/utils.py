"""
CLI Utilities

Shared utilities for CLI commands including logging setup, validation,
formatting and source connection handling.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from tabledump.core.config import ConnectionConfig
from tabledump.source import SqlAlchemySource, connect_source

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route the tabledump loggers to a rich handler on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    package_logger = logging.getLogger("tabledump")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(console=err_console, show_path=False, markup=False,
                          rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def validate_positive_int(value: Optional[int]) -> Optional[int]:
    """Validate integer is positive."""
    if value is not None and value <= 0:
        raise typer.BadParameter("Value must be a positive integer")
    return value


@contextmanager
def open_source(config: ConnectionConfig) -> Iterator[SqlAlchemySource]:
    """Connect to the source database for the duration of a command."""
    source = connect_source(config)
    try:
        yield source
    finally:
        source.close()


def handle_keyboard_interrupt() -> None:
    """Handle keyboard interrupt gracefully."""
    console.print("\n[yellow]Operation cancelled by user[/yellow]")
    raise typer.Exit(1)
