from tabledump.core.exceptions import RecoverySuggestion, TableDumpError, is_missing_table_error
import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.padding import Padding

console = Console(stderr=True)


def handle_error(err: TableDumpError):
    """Handles TableDumpError exceptions, formats them, and prints them to the console."""
    console.print()
    title = err.operation or type(err).__name__
    error_panel = Panel(
        Text(err.message),
        title=f"[bold red]Error: {title}[/bold red]",
        border_style="red",
        expand=False
    )
    console.print(error_panel)

    if err.suggestions:
        console.print("\n[bold green]Suggested solutions:[/bold green]")
        for i, suggestion in enumerate(err.suggestions, 1):
            suggestion_text = Text(f"{i}. {suggestion.action}: {suggestion.description}\n")
            if suggestion.command:
                suggestion_text.append("   Run: ", style="bold")
                suggestion_text.append(f"{suggestion.command}", style="cyan")
            console.print(Padding(suggestion_text, (0, 1)))

    if err.context.correlation_id:
        console.print(Padding(f"Trace ID: [yellow]{err.context.correlation_id}[/yellow]", (1, 0, 0, 0)))

    raise typer.Exit(code=1)


def add_missing_table_hint(err: TableDumpError, table: str) -> None:
    """Attach a hint about table names when the error looks like a missing table."""
    if not is_missing_table_error(err):
        return
    err.add_suggestion(RecoverySuggestion(
        action="Check the table name",
        description=(
            f"Verify that '{table}' exists and is spelled correctly. If it belongs to "
            "another schema, use the full name (for example: schema.table)."
        ),
        command="tabledump tables",
        priority=0,
    ))
