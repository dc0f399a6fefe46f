"""
Sink Interface

Structural interface shared by every export destination, the table of
supported formats, and the small collaborators injected into sinks
(progress reporting and the operator prompt).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from rich.console import Console

logger = logging.getLogger("tabledump.exporters")


class SinkStatus(Enum):
    """Result of opening a sink."""
    READY = "ready"
    DECLINED = "declined"


class Sink(Protocol):
    """
    A destination that persists a stream of rows.

    open() prepares the destination and may report DECLINED when the operator
    refuses to overwrite it. write_row() receives raw cursor rows in cursor
    order and normalizes them before writing. finalize() flushes and returns
    the number of rows written. close() releases resources and is safe to
    call more than once.
    """

    destination: Optional[str]

    def open(self, table: str, columns: List[str]) -> SinkStatus: ...

    def write_row(self, row: Sequence[Any]) -> None: ...

    def finalize(self) -> int: ...

    def close(self) -> None: ...


class ProgressReporter(Protocol):
    """Receives running row counts from a sink."""

    def start(self, description: str, total: Optional[int] = None) -> None: ...

    def update(self, rows: int) -> None: ...

    def finish(self, rows: int) -> None: ...


class NullProgress:
    """Progress reporter that records the last count and displays nothing."""

    def __init__(self):
        self.rows = 0
        self.updates: List[int] = []

    def start(self, description: str, total: Optional[int] = None) -> None:
        pass

    def update(self, rows: int) -> None:
        self.rows = rows
        self.updates.append(rows)

    def finish(self, rows: int) -> None:
        self.rows = rows


PromptReader = Callable[[str], str]

_prompt_console = Console()


def read_answer(message: str) -> str:
    """Ask the operator a question on the terminal; EOF counts as no answer."""
    try:
        return _prompt_console.input(message, markup=False, emoji=False)
    except EOFError:
        return ""


def is_yes(answer: Optional[str], accept: Sequence[str] = ("y",)) -> bool:
    """Check a prompt answer against the accepted affirmative replies."""
    if answer is None:
        return False
    return answer.strip().lower() in accept


@dataclass(frozen=True)
class FormatInfo:
    """Information about an export format."""
    name: str
    extension: str
    description: str
    requires_columns: bool = False
    supports_cancellation: bool = False


FORMATS: Dict[str, FormatInfo] = {
    "json": FormatInfo("json", ".json", "JSON array of row objects"),
    "csv": FormatInfo("csv", ".csv", "Delimited text, '||' separated with header"),
    "tsv": FormatInfo("tsv", ".tsv", "Tab separated text with header"),
    "sqlite3": FormatInfo("sqlite3", ".sqlite3", "Table in output.sqlite3"),
    "duckdb": FormatInfo("duckdb", ".duckdb", "Table in output.duckdb"),
    "parquet": FormatInfo(
        "parquet", ".parquet", "Parquet file of string columns",
        requires_columns=True, supports_cancellation=True,
    ),
}

_ALIASES = {
    "sqlite": "sqlite3",
}

DEFAULT_FORMAT = "json"


def resolve_format(format_name: Optional[str]) -> FormatInfo:
    """Resolve a requested format string; unrecognized strings fall back to JSON."""
    name = (format_name or DEFAULT_FORMAT).strip().lower()
    name = _ALIASES.get(name, name)
    info = FORMATS.get(name)
    if info is None:
        logger.debug(f"Unknown format '{format_name}', falling back to {DEFAULT_FORMAT}")
        info = FORMATS[DEFAULT_FORMAT]
    return info


def list_formats() -> List[str]:
    """List all available export formats."""
    return list(FORMATS.keys())
