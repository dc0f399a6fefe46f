"""
Embedded Engine Dialects

Describes the differences between the embedded databases the row-store
sink can write to: identifier quoting, destination file, how to connect and
how to ask whether a table exists.
"""

import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Dict

import duckdb

Opener = Callable[[str], Any]


def open_sqlite(path: str) -> sqlite3.Connection:
    """Open a SQLite database with transactions under explicit control."""
    return sqlite3.connect(path, isolation_level=None)


def open_duckdb(path: str) -> "duckdb.DuckDBPyConnection":
    return duckdb.connect(path)


@dataclass(frozen=True)
class EngineDialect:
    """Engine-specific parts of the embedded row-store algorithm."""
    name: str
    display_name: str
    extension: str
    quote_open: str
    quote_close: str
    exists_query: str
    opener: Opener

    @property
    def filename(self) -> str:
        return f"output{self.extension}"

    def quote(self, identifier: str) -> str:
        """Quote an identifier, doubling any embedded closing quote."""
        escaped = identifier.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def create_table_sql(self, table: str, columns) -> str:
        column_defs = ", ".join(f"{self.quote(col)} TEXT" for col in columns)
        return f"CREATE TABLE IF NOT EXISTS {self.quote(table)} ({column_defs})"

    def drop_table_sql(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {self.quote(table)}"

    def insert_sql(self, table: str, columns) -> str:
        quoted = ", ".join(self.quote(col) for col in columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {self.quote(table)} ({quoted}) VALUES ({placeholders})"


SQLITE = EngineDialect(
    name="sqlite3",
    display_name="SQLite3",
    extension=".sqlite3",
    quote_open='"',
    quote_close='"',
    exists_query="SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?",
    opener=open_sqlite,
)

DUCKDB = EngineDialect(
    name="duckdb",
    display_name="DuckDB",
    extension=".duckdb",
    quote_open='"',
    quote_close='"',
    exists_query="SELECT count(*) FROM information_schema.tables WHERE table_name=?",
    opener=open_duckdb,
)

DIALECTS: Dict[str, EngineDialect] = {
    SQLITE.name: SQLITE,
    DUCKDB.name: DUCKDB,
}
