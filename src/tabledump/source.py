"""
Source Database Access

SQLAlchemy-backed access to the database being exported: row counts,
streaming cursors for the export query, and table/column listings for the
diagnostic commands. Queries are sent to the driver verbatim.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, NoSuchTableError, SQLAlchemyError

from tabledump.core.config.models import ConnectionConfig
from tabledump.core.exceptions import ConfigurationError, ErrorCode, SourceError
from tabledump.query import build_count_query

logger = logging.getLogger("tabledump.source")


class RowCursor(Protocol):
    """Forward-only stream of raw rows with a fixed column list."""

    columns: List[str]

    def __iter__(self) -> Iterator[Sequence[Any]]: ...

    def close(self) -> None: ...


class RowSource(Protocol):
    """What the export orchestrator needs from the source database."""

    def count_rows(self, table: str) -> int: ...

    def open_cursor(self, query: str) -> RowCursor: ...

    def close(self) -> None: ...


class SqlAlchemyCursor:
    """Streaming result of one query on a dedicated connection."""

    def __init__(self, connection: Connection, result: Result):
        self._connection = connection
        self._result = result
        self.columns: List[str] = list(result.keys())

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        for row in self._result:
            yield tuple(row)

    def close(self) -> None:
        try:
            self._result.close()
        finally:
            self._connection.close()


class SqlAlchemySource:
    """Source database reached through a SQLAlchemy engine."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._active: Optional[SqlAlchemyCursor] = None

    @classmethod
    def from_url(cls, url: str) -> "SqlAlchemySource":
        return cls(create_engine(url, pool_pre_ping=True))

    def ping(self) -> None:
        """Check that the database answers."""
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except SQLAlchemyError as e:
            raise SourceError(
                f"cannot connect to database: {e}", operation="connect",
                error_code=ErrorCode.SOURCE_CONNECTION_FAILED, cause=e,
            ) from e

    def count_rows(self, table: str) -> int:
        try:
            with self.engine.connect() as conn:
                return int(conn.exec_driver_sql(build_count_query(table)).scalar() or 0)
        except SQLAlchemyError as e:
            raise SourceError(
                f"could not get total row count: {e}", operation="count",
                error_code=ErrorCode.SOURCE_COUNT_FAILED, table=table, cause=e,
            ) from e

    def open_cursor(self, query: str) -> SqlAlchemyCursor:
        conn = self.engine.connect()
        try:
            result = conn.execution_options(stream_results=True).exec_driver_sql(query)
        except SQLAlchemyError as e:
            conn.close()
            raise SourceError(
                f"error querying table rows: {e}", operation="query",
                error_code=ErrorCode.SOURCE_QUERY_FAILED, cause=e,
            ) from e
        self._active = SqlAlchemyCursor(conn, result)
        return self._active

    def list_tables(self) -> List[str]:
        try:
            return sorted(inspect(self.engine).get_table_names())
        except SQLAlchemyError as e:
            raise SourceError(
                f"error querying tables: {e}", operation="list tables",
                error_code=ErrorCode.SOURCE_METADATA_FAILED, cause=e,
            ) from e

    def list_fields(self, table: str) -> List[Dict[str, Any]]:
        """Column name, type and nullability of a table, in ordinal order."""
        schema, _, name = table.rpartition(".")
        try:
            columns = inspect(self.engine).get_columns(name, schema=schema or None)
        except NoSuchTableError as e:
            raise SourceError(
                f"error querying fields: table does not exist: {table}", operation="list fields",
                error_code=ErrorCode.SOURCE_METADATA_FAILED, table=table, cause=e,
            ) from e
        except SQLAlchemyError as e:
            raise SourceError(
                f"error querying fields: {e}", operation="list fields",
                error_code=ErrorCode.SOURCE_METADATA_FAILED, table=table, cause=e,
            ) from e
        return [
            {"name": col["name"], "type": str(col["type"]), "nullable": bool(col.get("nullable", True))}
            for col in columns
        ]

    def force_close(self) -> None:
        """Close the connection of the running query, then the engine."""
        active, self._active = self._active, None
        if active is not None:
            try:
                active.close()
            except SQLAlchemyError as e:
                logger.debug(f"Error closing active cursor: {e}")
        self.close()

    def close(self) -> None:
        self.engine.dispose()


def connect_source(config: ConnectionConfig) -> SqlAlchemySource:
    """
    Create and ping a source for the configured connection.

    Raises:
        ConfigurationError: If required settings are missing or the URL is invalid
        SourceError: If the database cannot be reached
    """
    missing = config.missing_fields()
    if missing:
        raise ConfigurationError(
            "missing required connection parameters: " + ", ".join(missing),
            error_code=ErrorCode.CONFIG_MISSING_REQUIRED,
        )

    try:
        source = SqlAlchemySource.from_url(config.build_url())
    except (ArgumentError, NoSuchModuleError, ImportError) as e:
        raise ConfigurationError(
            f"error creating connection pool: {e}",
            error_code=ErrorCode.CONFIG_INVALID_VALUE, config_key="url", cause=e,
        ) from e

    try:
        source.ping()
    except SourceError:
        source.close()
        raise
    logger.info("Connected to source database")
    return source
