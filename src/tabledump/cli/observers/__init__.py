"""Progress displays used by the CLI."""

from tabledump.cli.observers.progress import ProgressDisplay, RichRowProgress, create_progress

__all__ = ["ProgressDisplay", "RichRowProgress", "create_progress"]
