"""
Test Configuration and Fixtures

Shared fixtures for the test suite: temporary directories, a populated
SQLite source database reached through SQLAlchemy, and in-memory fakes of
the row source used by the orchestrator.
"""

import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

import pytest

from tabledump.source import SqlAlchemySource


CUSTOMER_COLUMNS = ["id", "name", "balance", "notes", "raw"]

CUSTOMER_ROWS = [
    (1, "Alice", 10.5, "likes, commas", b"42"),
    (2, "Bob", None, None, b"3.25"),
    (3, "Carol", 7.0, "plain", b"abc"),
]


class FakeCursor:
    """In-memory RowCursor."""

    def __init__(self, columns: List[str], rows: Sequence[Sequence[Any]],
                 fail_after: Optional[int] = None, on_row=None):
        self.columns = list(columns)
        self.rows = list(rows)
        self.fail_after = fail_after
        self.on_row = on_row
        self.closed = False

    def __iter__(self) -> Iterator[Sequence[Any]]:
        for index, row in enumerate(self.rows):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("connection reset by peer")
            yield row
            if self.on_row is not None:
                self.on_row(index + 1)

    def close(self) -> None:
        self.closed = True


class FakeSource:
    """In-memory RowSource that records the queries it receives."""

    def __init__(self, columns: List[str], rows: Sequence[Sequence[Any]],
                 count_error: Optional[Exception] = None,
                 query_error: Optional[Exception] = None,
                 **cursor_kwargs):
        self.columns = columns
        self.rows = rows
        self.count_error = count_error
        self.query_error = query_error
        self.cursor_kwargs = cursor_kwargs
        self.queries: List[str] = []
        self.cursors: List[FakeCursor] = []
        self.closed = False

    def count_rows(self, table: str) -> int:
        if self.count_error is not None:
            raise self.count_error
        return len(self.rows)

    def open_cursor(self, query: str) -> FakeCursor:
        self.queries.append(query)
        if self.query_error is not None:
            raise self.query_error
        cursor = FakeCursor(self.columns, self.rows, **self.cursor_kwargs)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def source_db(temp_dir) -> Path:
    """SQLite database file with a populated Customers table."""
    db_path = temp_dir / "source.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TABLE Customers (id INTEGER, name TEXT, balance REAL, notes TEXT, raw BLOB)"
        )
        conn.executemany("INSERT INTO Customers VALUES (?, ?, ?, ?, ?)", CUSTOMER_ROWS)
        conn.execute("CREATE TABLE Orders (order_id INTEGER NOT NULL, customer_id INTEGER)")
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def source_url(source_db) -> str:
    return f"sqlite:///{source_db}"


@pytest.fixture
def sqlite_source(source_url):
    """SqlAlchemySource connected to the populated SQLite database."""
    source = SqlAlchemySource.from_url(source_url)
    yield source
    source.close()


@pytest.fixture
def fake_source():
    return FakeSource(CUSTOMER_COLUMNS, CUSTOMER_ROWS)


@pytest.fixture
def fields_file(temp_dir) -> Path:
    path = temp_dir / "fields.txt"
    path.write_text("ID\nName\n\n  \n", encoding="utf-8")
    return path


@pytest.fixture
def make_source():
    """Factory for FakeSource instances defaulting to the Customers data."""
    def factory(columns=CUSTOMER_COLUMNS, rows=CUSTOMER_ROWS, **kwargs):
        return FakeSource(columns, rows, **kwargs)
    return factory
