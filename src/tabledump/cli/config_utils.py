"""
Configuration Utilities for CLI Commands

Turns the global command-line options into a validated AppConfig and shows
a short summary of the settings an export runs with.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.panel import Panel

from tabledump.cli.error_handling import handle_error
from tabledump.cli.utils import console
from tabledump.core.config import AppConfig, ConfigManager
from tabledump.core.exceptions import TableDumpError


class CLIState:
    """Global options collected by the app callback."""

    def __init__(self, config_file: Optional[Path] = None,
                 cli_args: Optional[Dict[str, Any]] = None):
        self.config_file = config_file
        self.cli_args = cli_args or {}
        self._config: Optional[AppConfig] = None

    def load_config(self, **overrides: Any) -> AppConfig:
        """
        Load configuration from file, environment and command line.

        Per-command options in ``overrides`` take precedence over the global
        options. Configuration errors end the command with exit code 1.
        """
        cli_args = dict(self.cli_args)
        cli_args.update({k: v for k, v in overrides.items() if v is not None})
        try:
            self._config = ConfigManager(config_file=self.config_file).load_config(cli_args)
        except TableDumpError as e:
            handle_error(e)
        return self._config


def get_state(ctx: typer.Context) -> CLIState:
    """Return the CLI state stored by the app callback."""
    if not isinstance(ctx.obj, CLIState):
        ctx.obj = CLIState()
    return ctx.obj


def print_config_summary(config: AppConfig, table: str, format_name: str) -> None:
    """Print a summary of the export settings."""
    connection = config.connection
    if connection.url:
        target = connection.url.split("@")[-1]
    else:
        target = f"{connection.server}:{connection.port}/{connection.database}"

    config_lines = [
        f"Table: [cyan]{table}[/cyan]",
        f"Source: [cyan]{target}[/cyan]",
        f"Format: [cyan]{format_name}[/cyan]",
        f"Output directory: [cyan]{config.output.output_dir}[/cyan]",
        f"Batch size: [cyan]{config.output.batch_size:,}[/cyan]",
    ]
    console.print(Panel(
        "\n".join(config_lines),
        title="[bold]Configuration[/bold]",
        border_style="green"
    ))
