"""
Exporters Package

Sinks that persist a stream of table rows: delimited text and JSON, the
embedded SQLite/DuckDB row stores, and Parquet.
"""

from tabledump.exporters.base import (
    FORMATS, FormatInfo, NullProgress, ProgressReporter, Sink, SinkStatus,
    list_formats, resolve_format
)
from tabledump.exporters.dialects import DIALECTS, DUCKDB, SQLITE, EngineDialect
from tabledump.exporters.embedded import EmbeddedRowStoreSink
from tabledump.exporters.parquet import ColumnarSink
from tabledump.exporters.text import DelimitedTextSink

__all__ = [
    'FORMATS',
    'FormatInfo',
    'NullProgress',
    'ProgressReporter',
    'Sink',
    'SinkStatus',
    'list_formats',
    'resolve_format',
    'DIALECTS',
    'DUCKDB',
    'SQLITE',
    'EngineDialect',
    'EmbeddedRowStoreSink',
    'ColumnarSink',
    'DelimitedTextSink',
]
