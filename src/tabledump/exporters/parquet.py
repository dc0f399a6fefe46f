"""
Columnar Sink

Writes rows to <table>.parquet with pyarrow. Every column is a nullable
UTF-8 string named after the lower-cased column from the fields file. Rows
are buffered and flushed as one row group per batch.

Unlike the embedded stores, declining to overwrite an existing file is an
error here, and an interrupt stops the export between rows.
"""

import logging
import threading
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import pyarrow as pa
import pyarrow.parquet as pq

from tabledump.core.exceptions import (
    DestinationError, ErrorCode, ExportAborted, ExportInterrupted
)
from tabledump.exporters.base import (
    NullProgress, ProgressReporter, PromptReader, SinkStatus, is_yes, read_answer
)
from tabledump.normalize import format_value, normalize_row

OVERWRITE_ANSWERS = ("y", "yes")


class ColumnarSink:
    """Parquet sink with cooperative cancellation."""

    def __init__(self, columns: Optional[List[str]] = None,
                 output_dir: Union[str, Path] = ".",
                 prompt: Optional[PromptReader] = None,
                 progress: Optional[ProgressReporter] = None,
                 cancel_event: Optional[threading.Event] = None,
                 batch_size: int = 10000,
                 progress_interval: int = 1000):
        self.allowed_columns = list(columns) if columns else None
        self.output_dir = Path(output_dir)
        self.prompt = prompt or read_answer
        self.progress = progress or NullProgress()
        self.cancel_event = cancel_event or threading.Event()
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.logger = logging.getLogger("tabledump.exporters.parquet")

        self.destination: Optional[str] = None
        self.schema: Optional[pa.Schema] = None
        self.rows_written = 0
        self.cancelled = False
        self._writer: Optional[pq.ParquetWriter] = None
        self._buffer: List[List[Optional[str]]] = []
        self._buffered = 0

    def open(self, table: str, columns: List[str]) -> SinkStatus:
        path = self.output_dir / f"{table.lower()}.parquet"
        self.destination = str(path)

        if path.exists():
            answer = self.prompt(f"Output file {path} already exists. Overwrite? [y/N]: ")
            if not is_yes(answer, OVERWRITE_ANSWERS):
                raise ExportAborted(f"aborted by user; file exists: {path}", file_path=str(path))
            try:
                path.unlink()
            except OSError as e:
                raise DestinationError(
                    f"failed to remove existing file: {e}", operation="remove",
                    file_path=str(path), cause=e,
                ) from e

        names = [name.lower() for name in (self.allowed_columns or columns)]
        self.schema = pa.schema([pa.field(name, pa.string(), nullable=True) for name in names])
        self._buffer = [[] for _ in names]

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._writer = pq.ParquetWriter(str(path), self.schema)
        except (OSError, pa.ArrowException) as e:
            raise DestinationError(
                f"failed to create parquet file: {e}", operation="create",
                error_code=ErrorCode.DEST_OPEN_FAILED, file_path=str(path), cause=e,
            ) from e

        self.logger.debug(f"Writing Parquet output to {path}")
        return SinkStatus.READY

    def write_row(self, row: Sequence[Any]) -> None:
        if self.cancel_event.is_set():
            self.cancelled = True
            self._finish()
            self.logger.warning(f"Export aborted by operator after {self.rows_written} rows")
            raise ExportInterrupted(rows_written=self.rows_written)

        values = normalize_row(row)
        if len(values) != len(self._buffer):
            raise DestinationError(
                f"row has {len(values)} values but the schema has {len(self._buffer)} columns",
                operation="write", file_path=self.destination,
            )
        for column, value in zip(self._buffer, values):
            column.append(None if value is None else format_value(value))
        self._buffered += 1
        self.rows_written += 1

        if self._buffered >= self.batch_size:
            self._flush()
        if self.rows_written % self.progress_interval == 0:
            self.progress.update(self.rows_written)

    def _flush(self) -> None:
        if not self._buffered or self._writer is None:
            return
        arrays = [pa.array(column, type=pa.string()) for column in self._buffer]
        try:
            self._writer.write_table(pa.Table.from_arrays(arrays, schema=self.schema))
        except (OSError, pa.ArrowException) as e:
            raise DestinationError(
                f"parquet write error: {e}", operation="write",
                file_path=self.destination, cause=e,
            ) from e
        self._buffer = [[] for _ in self._buffer]
        self._buffered = 0

    def _finish(self) -> None:
        try:
            self._flush()
        finally:
            self.close()

    def finalize(self) -> int:
        self._finish()
        self.logger.info(f"Wrote {self.rows_written} rows to {self.destination}")
        return self.rows_written

    def close(self) -> None:
        if self._writer is None:
            return
        writer, self._writer = self._writer, None
        try:
            writer.close()
        except (OSError, pa.ArrowException) as e:
            raise DestinationError(
                f"error closing parquet writer: {e}", operation="close",
                file_path=self.destination, cause=e,
            ) from e
