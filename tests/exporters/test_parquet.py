"""
Tests for the Columnar (Parquet) Sink

Tests the string schema, row groups, the overwrite prompt and cooperative
cancellation.
"""

import shutil
import tempfile
import threading
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from tabledump.core.exceptions import DestinationError, ExportAborted, ExportInterrupted
from tabledump.exporters.base import SinkStatus
from tabledump.exporters.parquet import ColumnarSink


class TestColumnarSink:
    """Test suite for ColumnarSink."""

    def setup_method(self):
        """Set up test environment for each test."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.path = self.temp_dir / "customers.parquet"
        self.answer = "y"
        self.prompts = []
        self.cancel_event = threading.Event()

    def teardown_method(self):
        """Clean up test environment."""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def _prompt(self, message):
        self.prompts.append(message)
        return self.answer

    def _sink(self, columns=("ID", "Name"), **kwargs):
        return ColumnarSink(
            columns=list(columns),
            output_dir=self.temp_dir,
            prompt=self._prompt,
            cancel_event=self.cancel_event,
            **kwargs,
        )

    def test_export_rows(self):
        sink = self._sink()
        assert sink.open("Customers", ["ID", "Name"]) is SinkStatus.READY
        sink.write_row((1, "Alice"))
        sink.write_row((2, None))
        sink.write_row((b"3.50", 4.0))
        count = sink.finalize()

        assert count == 3
        assert sink.destination == str(self.path)
        table = pq.read_table(self.path)
        assert table.column_names == ["id", "name"]
        assert table.to_pydict() == {
            "id": ["1", "2", "3.5"],
            "name": ["Alice", None, "4"],
        }

    def test_schema_is_nullable_strings(self):
        sink = self._sink()
        sink.open("Customers", ["ID", "Name"])
        sink.finalize()

        schema = pq.read_schema(self.path)
        assert all(field.type == pa.string() for field in schema)
        assert all(field.nullable for field in schema)
        assert pq.read_table(self.path).num_rows == 0

    def test_one_row_group_per_batch(self):
        sink = self._sink(batch_size=4)
        sink.open("Customers", ["ID", "Name"])
        for i in range(10):
            sink.write_row((i, f"name{i}"))
        sink.finalize()

        metadata = pq.ParquetFile(self.path).metadata
        assert metadata.num_rows == 10
        assert metadata.num_row_groups == 3

    def test_existing_file_declined(self):
        self.path.write_bytes(b"keep")
        self.answer = "n"

        sink = self._sink()
        with pytest.raises(ExportAborted) as exc_info:
            sink.open("Customers", ["ID", "Name"])

        assert str(exc_info.value) == f"aborted by user; file exists: {self.path}"
        assert self.prompts == [f"Output file {self.path} already exists. Overwrite? [y/N]: "]
        assert self.path.read_bytes() == b"keep"

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES "])
    def test_existing_file_overwritten(self, answer):
        self.path.write_bytes(b"stale")
        self.answer = answer

        sink = self._sink()
        assert sink.open("Customers", ["ID", "Name"]) is SinkStatus.READY
        sink.write_row((1, "a"))
        sink.finalize()

        assert pq.read_table(self.path).num_rows == 1

    def test_cancellation_between_rows(self):
        sink = self._sink(batch_size=100)
        sink.open("Customers", ["ID", "Name"])
        sink.write_row((1, "a"))
        sink.write_row((2, "b"))
        self.cancel_event.set()

        with pytest.raises(ExportInterrupted) as exc_info:
            sink.write_row((3, "c"))

        assert exc_info.value.rows_written == 2
        assert sink.cancelled
        assert pq.read_table(self.path).to_pydict() == {"id": ["1", "2"], "name": ["a", "b"]}
        sink.close()

    def test_columns_default_to_cursor_columns(self):
        sink = ColumnarSink(output_dir=self.temp_dir, prompt=self._prompt)
        sink.open("t", ["A", "B"])
        sink.write_row((1, 2))
        sink.finalize()

        assert pq.read_table(self.temp_dir / "t.parquet").column_names == ["a", "b"]

    def test_row_length_mismatch(self):
        sink = self._sink()
        sink.open("Customers", ["ID", "Name"])

        with pytest.raises(DestinationError):
            sink.write_row((1, "a", "extra"))
        sink.close()
