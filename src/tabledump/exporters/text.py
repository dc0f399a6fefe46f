"""
Delimited Text Sink

Writes CSV, TSV or a JSON array to <table>.<ext> in the output directory.
CSV uses '||' as its separator so values containing commas survive without
quoting.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, TextIO, Union

from tabledump.core.exceptions import DestinationError, DestinationExists, ErrorCode
from tabledump.exporters.base import NullProgress, ProgressReporter, SinkStatus
from tabledump.normalize import format_value, normalize_record, normalize_row

CSV_SEPARATOR = "||"
TSV_SEPARATOR = "\t"

_EXTENSIONS = {"csv": ".csv", "tsv": ".tsv", "json": ".json"}


class DelimitedTextSink:
    """
    Text file sink with three output modes.

    The mode is 'csv', 'tsv' or 'json'. The file is always truncated and
    recreated unless overwrite is disabled, in which case an existing file is
    an error.
    """

    def __init__(self, mode: str, output_dir: Union[str, Path] = ".",
                 progress: Optional[ProgressReporter] = None,
                 progress_interval: int = 1000,
                 overwrite: bool = True):
        if mode not in _EXTENSIONS:
            mode = "json"
        self.mode = mode
        self.output_dir = Path(output_dir)
        self.progress = progress or NullProgress()
        self.progress_interval = progress_interval
        self.overwrite = overwrite
        self.logger = logging.getLogger("tabledump.exporters.text")

        self.destination: Optional[str] = None
        self.columns: List[str] = []
        self.rows_written = 0
        self._file: Optional[TextIO] = None
        self._first = True

    @property
    def separator(self) -> str:
        return CSV_SEPARATOR if self.mode == "csv" else TSV_SEPARATOR

    def open(self, table: str, columns: List[str]) -> SinkStatus:
        path = self.output_dir / f"{table.lower()}{_EXTENSIONS[self.mode]}"
        self.destination = str(path)
        self.columns = list(columns)

        if path.exists() and not self.overwrite:
            raise DestinationExists(str(path))

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._file = open(path, "w", encoding="utf-8", newline="")
            if self.mode == "json":
                self._file.write("[")
            else:
                self._file.write(self.separator.join(self.columns) + "\n")
        except OSError as e:
            raise DestinationError(
                f"error creating output file: {e}", operation="create",
                error_code=ErrorCode.DEST_OPEN_FAILED, file_path=str(path), cause=e,
            ) from e

        self.logger.debug(f"Writing {self.mode.upper()} output to {path}")
        return SinkStatus.READY

    def write_row(self, row: Sequence[Any]) -> None:
        if self.mode == "json":
            self._write_json_row(row)
        else:
            values = normalize_row(row)
            line = self.separator.join(format_value(value) for value in values)
            self._write(line + "\n", f"error writing {self.mode.upper()} row")

        self.rows_written += 1
        if self.rows_written % self.progress_interval == 0:
            self.progress.update(self.rows_written)

    def _write_json_row(self, row: Sequence[Any]) -> None:
        record = normalize_record(self.columns, row)
        try:
            encoded = json.dumps(record, indent=2, ensure_ascii=False, allow_nan=False, default=str)
        except ValueError as e:
            raise DestinationError(
                f"error marshaling row: {e}", operation="encode",
                file_path=self.destination, cause=e,
            ) from e

        # Every line after the first is indented one level inside the array
        encoded = "\n  ".join(encoded.split("\n"))
        if not self._first:
            self._write(",\n", "error writing JSON separator")
        self._first = False
        self._write(encoded, "error writing JSON row")

    def _write(self, text: str, failure: str) -> None:
        if self._file is None:
            raise DestinationError(f"{failure}: sink is not open", operation="write",
                                   file_path=self.destination)
        try:
            self._file.write(text)
        except OSError as e:
            raise DestinationError(f"{failure}: {e}", operation="write",
                                   file_path=self.destination, cause=e) from e

    def finalize(self) -> int:
        if self.mode == "json":
            self._write("]\n", "error writing JSON close")
        try:
            self.close()
        except OSError as e:
            raise DestinationError(f"error closing output file: {e}", operation="close",
                                   file_path=self.destination, cause=e) from e
        self.logger.info(f"Wrote {self.rows_written} rows to {self.destination}")
        return self.rows_written

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None
