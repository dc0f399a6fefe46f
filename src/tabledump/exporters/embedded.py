"""
Embedded Row-Store Sink

Writes rows into a table of an embedded database file (output.sqlite3 or
output.duckdb). Every column is stored as TEXT. Inserts run inside a
transaction that is committed every batch_size rows, which bounds the
journal size on large tables. A failure leaves the already committed batches
in place.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from tabledump.core.exceptions import DestinationError, ErrorCode
from tabledump.exporters.base import (
    NullProgress, ProgressReporter, PromptReader, SinkStatus, is_yes, read_answer
)
from tabledump.exporters.dialects import EngineDialect, Opener
from tabledump.normalize import normalize_row

DEFAULT_BATCH_SIZE = 10000


class EmbeddedRowStoreSink:
    """
    Row-store sink for one embedded engine.

    The opener and the prompt reader are injected so tests can substitute the
    database connection and the operator's answer.
    """

    def __init__(self, dialect: EngineDialect, output_dir: Union[str, Path] = ".",
                 opener: Optional[Opener] = None,
                 prompt: Optional[PromptReader] = None,
                 progress: Optional[ProgressReporter] = None,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 progress_interval: int = 1000):
        self.dialect = dialect
        self.output_dir = Path(output_dir)
        self.opener = opener or dialect.opener
        self.prompt = prompt or read_answer
        self.progress = progress or NullProgress()
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.logger = logging.getLogger(f"tabledump.exporters.{dialect.name}")

        self.destination: Optional[str] = None
        self.table: Optional[str] = None
        self.rows_written = 0
        self.commits = 0
        self._conn = None
        self._insert_sql: Optional[str] = None
        self._in_transaction = False

    def _fail(self, step: str, action: str, error: Exception,
              error_code: ErrorCode = ErrorCode.DEST_WRITE_FAILED) -> DestinationError:
        return DestinationError(
            f"error {action} {self.dialect.display_name}: {error}",
            operation=step,
            error_code=error_code,
            file_path=self.destination,
            cause=error,
        )

    def open(self, table: str, columns: List[str]) -> SinkStatus:
        self.table = table.lower()
        path = self.output_dir / self.dialect.filename
        self.destination = str(path)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._conn = self.opener(str(path))
        except Exception as e:
            raise self._fail("open", "opening", e, ErrorCode.DEST_OPEN_FAILED) from e

        try:
            (count,) = self._conn.execute(self.dialect.exists_query, [self.table]).fetchone()
        except Exception as e:
            raise self._fail("exists-check", "checking if table exists in", e,
                             ErrorCode.DEST_SCHEMA_FAILED) from e

        if count > 0:
            answer = self.prompt(
                f"Table '{self.table}' already exists in {self.dialect.filename}. "
                f"Delete and recreate? (y/N): "
            )
            if not is_yes(answer):
                self.logger.info(f"Overwrite of table '{self.table}' declined")
                return SinkStatus.DECLINED
            try:
                self._conn.execute(self.dialect.drop_table_sql(self.table))
            except Exception as e:
                raise self._fail("drop", "dropping table in", e, ErrorCode.DEST_SCHEMA_FAILED) from e
            self.logger.info(f"Table '{self.table}' dropped")

        try:
            self._conn.execute(self.dialect.create_table_sql(self.table, columns))
        except Exception as e:
            raise self._fail("create", "creating table in", e, ErrorCode.DEST_SCHEMA_FAILED) from e

        self._insert_sql = self.dialect.insert_sql(self.table, columns)
        self._begin()
        return SinkStatus.READY

    def _begin(self) -> None:
        try:
            self._conn.execute("BEGIN TRANSACTION")
        except Exception as e:
            raise self._fail("begin", "starting transaction in", e) from e
        self._in_transaction = True

    def _commit(self) -> None:
        try:
            self._conn.execute("COMMIT")
        except Exception as e:
            raise self._fail("commit", "committing transaction in", e,
                             ErrorCode.DEST_COMMIT_FAILED) from e
        self._in_transaction = False
        self.commits += 1

    def write_row(self, row: Sequence[Any]) -> None:
        values = normalize_row(row)
        try:
            self._conn.execute(self._insert_sql, values)
        except Exception as e:
            raise self._fail("insert", "inserting row into", e) from e

        self.rows_written += 1
        if self.rows_written % self.batch_size == 0:
            self._commit()
            self._begin()
            self.progress.update(self.rows_written)
        elif self.rows_written % self.progress_interval == 0:
            self.progress.update(self.rows_written)

    def finalize(self) -> int:
        self._commit()
        self.close()
        self.logger.info(
            f"Wrote {self.rows_written} rows to {self.destination} (table: {self.table})"
        )
        return self.rows_written

    def close(self) -> None:
        """Close the connection; an uncommitted batch is rolled back."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            if self._in_transaction:
                self._in_transaction = False
                try:
                    conn.execute("ROLLBACK")
                except Exception as e:
                    self.logger.warning(f"Rollback of open batch failed: {e}")
        finally:
            conn.close()
