"""Typer command-line interface for tabledump."""

from tabledump import __version__

__all__ = ["__version__"]
