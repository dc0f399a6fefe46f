"""
Export Orchestrator

Runs one table export end to end: build the query, estimate the row count,
open the cursor, pick the sink for the requested format, stream every row
through it and report what was written.
"""

import logging
import signal
import threading
import time
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from tabledump.core.config.models import OutputConfig
from tabledump.core.exceptions import (
    ExportInterrupted, NoColumnsSpecified, SourceError, TableDumpError, ErrorCode
)
from tabledump.exporters.base import (
    FormatInfo, NullProgress, ProgressReporter, PromptReader, Sink, SinkStatus, resolve_format
)
from tabledump.exporters.dialects import DIALECTS, Opener
from tabledump.exporters.embedded import EmbeddedRowStoreSink
from tabledump.exporters.parquet import ColumnarSink
from tabledump.exporters.text import DelimitedTextSink
from tabledump.query import build_query, read_fields_file
from tabledump.source import RowCursor, RowSource

logger = logging.getLogger("tabledump.orchestrator")


class ExportStatus(Enum):
    """How an export that raised no error ended."""
    COMPLETED = "completed"
    DECLINED = "declined"


@dataclass
class ExportJob:
    """State of one export invocation."""
    table: str
    fields_file: Optional[str]
    format: FormatInfo
    started: float
    rows: int = 0


@dataclass
class ExportOutcome:
    """Result of a finished export."""
    table: str
    format_name: str
    destination: Optional[str]
    rows_written: int
    elapsed: float
    status: ExportStatus = ExportStatus.COMPLETED
    total_rows: Optional[int] = None

    @property
    def declined(self) -> bool:
        return self.status is ExportStatus.DECLINED


class InterruptListener:
    """
    Listens for SIGINT/SIGTERM while an export runs.

    The cancellation event is always set. For sinks without cooperative
    cancellation the listener also force-closes the source and raises
    ExportInterrupted from the handler. Handlers can only be installed from
    the main thread; elsewhere the listener does nothing.
    """

    def __init__(self, cancel_event: threading.Event,
                 cooperative: bool = False,
                 on_force_close: Optional[Callable[[], None]] = None,
                 signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM)):
        self.cancel_event = cancel_event
        self.cooperative = cooperative
        self.on_force_close = on_force_close
        self.signals = tuple(signals)
        self.received: Optional[int] = None
        self._previous: Dict[int, Any] = {}

    def __enter__(self) -> "InterruptListener":
        if threading.current_thread() is threading.main_thread():
            for signum in self.signals:
                self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum, frame) -> None:
        self.received = signum
        self.cancel_event.set()
        if self.cooperative:
            logger.debug(f"Received {signal.Signals(signum).name}, stopping after the current row")
            return
        logger.warning(f"Received {signal.Signals(signum).name}, closing source connection")
        if self.on_force_close is not None:
            try:
                self.on_force_close()
            except Exception as e:
                logger.debug(f"Force close failed: {e}")
        raise ExportInterrupted(f"received signal: {signal.Signals(signum).name}")


class TableExporter:
    """
    Export Orchestrator.

    The source, the prompt reader, the progress display and the embedded
    database openers are injected; one exporter can run several exports
    against the same source one after another.
    """

    def __init__(self, source: RowSource,
                 config: Optional[OutputConfig] = None,
                 progress_factory: Optional[Callable[[], ProgressReporter]] = None,
                 prompt: Optional[PromptReader] = None,
                 openers: Optional[Dict[str, Opener]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 handle_signals: bool = True):
        self.source = source
        self.config = config or OutputConfig()
        self.progress_factory = progress_factory or NullProgress
        self.prompt = prompt
        self.openers = openers or {}
        self.cancel_event = cancel_event or threading.Event()
        self.handle_signals = handle_signals

    def build_query(self, table: str, fields_file: Optional[Union[str, Path]] = None) -> str:
        """Diagnostic entry point: the SELECT an export would run."""
        return build_query(table, fields_file)

    def create_sink(self, info: FormatInfo, progress: ProgressReporter,
                    columns: Optional[List[str]] = None) -> Sink:
        """Instantiate the sink for a resolved format."""
        cfg = self.config
        if info.name in DIALECTS:
            return EmbeddedRowStoreSink(
                DIALECTS[info.name],
                output_dir=cfg.output_dir,
                opener=self.openers.get(info.name),
                prompt=self.prompt,
                progress=progress,
                batch_size=cfg.batch_size,
                progress_interval=cfg.progress_interval,
            )
        if info.name == "parquet":
            return ColumnarSink(
                columns=columns,
                output_dir=cfg.output_dir,
                prompt=self.prompt,
                progress=progress,
                cancel_event=self.cancel_event,
                batch_size=cfg.batch_size,
                progress_interval=cfg.progress_interval,
            )
        return DelimitedTextSink(
            info.name,
            output_dir=cfg.output_dir,
            progress=progress,
            progress_interval=cfg.progress_interval,
            overwrite=cfg.overwrite_files,
        )

    def _count_rows(self, table: str) -> Optional[int]:
        try:
            return self.source.count_rows(table)
        except Exception as e:
            logger.warning(f"Warning: {e}; continuing without a total")
            return None

    @staticmethod
    def _iter_rows(cursor: RowCursor) -> Iterator[Sequence[Any]]:
        rows = iter(cursor)
        while True:
            try:
                row = next(rows)
            except StopIteration:
                return
            except TableDumpError:
                raise
            except Exception as e:
                raise SourceError(f"row error: {e}", operation="fetch",
                                  error_code=ErrorCode.SOURCE_FETCH_FAILED, cause=e) from e
            yield row

    def _force_close_source(self) -> None:
        close = getattr(self.source, "force_close", None) or self.source.close
        close()

    def export(self, table: str, fields_file: Optional[Union[str, Path]] = None,
               format_name: Optional[str] = None) -> ExportOutcome:
        """
        Export a table.

        Args:
            table: Source table name
            fields_file: Optional file with one column name per line
            format_name: Requested format; unrecognized names export JSON

        Returns:
            ExportOutcome with status DECLINED when the operator refused to
            overwrite an embedded-store table

        Raises:
            InputError: Fields file problems, or Parquet without a fields file
            SourceError: The export query or row fetch failed
            DestinationError: The destination could not be written
            ExportAborted: The operator refused to overwrite a Parquet file
            ExportInterrupted: The export was interrupted by a signal
        """
        info = resolve_format(format_name or self.config.default_format)
        self.cancel_event.clear()
        job = ExportJob(
            table=table,
            fields_file=str(fields_file) if fields_file else None,
            format=info,
            started=time.monotonic(),
        )

        allowed_columns = None
        if info.requires_columns:
            if not fields_file:
                raise NoColumnsSpecified(info.name)
            allowed_columns = read_fields_file(fields_file)

        query = self.build_query(table, fields_file)
        total = self._count_rows(table)
        logger.info(
            f"Starting download of table '{table}'"
            + (f" with fields from '{fields_file}'" if fields_file else "")
            + f" (total rows: {total if total is not None else 'unknown'})"
        )
        logger.debug(f"Export query: {query}")

        progress = self.progress_factory()
        sink = self.create_sink(info, progress, allowed_columns)
        cursor: Optional[RowCursor] = None
        progress_started = False
        try:
            try:
                cursor = self.source.open_cursor(query)
            except TableDumpError:
                raise
            except Exception as e:
                raise SourceError(f"error querying table rows: {e}", operation="query",
                                  table=table, cause=e) from e
            try:
                columns = list(cursor.columns)
            except Exception as e:
                raise SourceError(f"error getting columns: {e}", operation="columns",
                                  error_code=ErrorCode.SOURCE_COLUMNS_FAILED,
                                  table=table, cause=e) from e

            if sink.open(table, columns) is SinkStatus.DECLINED:
                logger.info("Aborted by user.")
                return ExportOutcome(
                    table=table, format_name=info.name, destination=sink.destination,
                    rows_written=0, elapsed=time.monotonic() - job.started,
                    status=ExportStatus.DECLINED, total_rows=total,
                )

            progress.start(f"Exporting {table}", total)
            progress_started = True
            listener = InterruptListener(
                self.cancel_event,
                cooperative=info.supports_cancellation,
                on_force_close=self._force_close_source,
            )
            try:
                with listener if self.handle_signals else nullcontext():
                    for row in self._iter_rows(cursor):
                        sink.write_row(row)
                        job.rows += 1
                    rows_written = sink.finalize()
            except ExportInterrupted as e:
                if not e.rows_written:
                    e.rows_written = job.rows
                raise
        finally:
            try:
                if progress_started:
                    progress.finish(job.rows)
                sink.close()
            finally:
                if cursor is not None:
                    cursor.close()

        elapsed = time.monotonic() - job.started
        logger.info(
            f"Table '{table}' data written to {sink.destination} "
            f"({rows_written} rows in {elapsed:.2f}s)"
        )
        return ExportOutcome(
            table=table, format_name=info.name, destination=sink.destination,
            rows_written=rows_written, elapsed=elapsed, total_rows=total,
        )
