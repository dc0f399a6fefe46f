"""
Core Exception Hierarchy for tabledump

Provides error classification with error codes, recovery suggestions, and
the name of the operation that failed, so callers can tell a survivable
failure (counting rows) from a fatal one (querying rows).
"""

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


class ErrorCode(Enum):
    """Standard error codes for different error categories."""

    # Input errors (1000-1999)
    INPUT_FIELDS_FILE_UNREADABLE = 1001
    INPUT_NO_FIELDS_FOUND = 1002
    INPUT_NO_COLUMNS_SPECIFIED = 1003
    INPUT_MISSING_TABLE = 1004

    # Source connectivity errors (2000-2999)
    SOURCE_CONNECTION_FAILED = 2001
    SOURCE_COUNT_FAILED = 2002
    SOURCE_QUERY_FAILED = 2003
    SOURCE_COLUMNS_FAILED = 2004
    SOURCE_FETCH_FAILED = 2005
    SOURCE_METADATA_FAILED = 2006

    # Configuration errors (3000-3999)
    CONFIG_INVALID_FORMAT = 3001
    CONFIG_MISSING_REQUIRED = 3002
    CONFIG_INVALID_VALUE = 3003

    # Destination errors (4000-4999)
    DEST_EXISTS = 4001
    DEST_OPEN_FAILED = 4002
    DEST_SCHEMA_FAILED = 4003
    DEST_WRITE_FAILED = 4004
    DEST_COMMIT_FAILED = 4005

    # Operator outcomes and generic errors (9000-9999)
    UNKNOWN_ERROR = 9000
    INTERNAL_ERROR = 9001
    OPERATION_ABORTED = 9002
    OPERATION_INTERRUPTED = 9003


@dataclass
class ErrorContext:
    """Contextual information about an error occurrence."""

    operation: str = ""
    table: Optional[str] = None
    file_path: Optional[str] = None
    format_name: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    user_context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            'operation': self.operation,
            'table': self.table,
            'file_path': self.file_path,
            'format_name': self.format_name,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp,
            'user_context': self.user_context
        }


@dataclass
class RecoverySuggestion:
    """Structured recovery suggestion for error resolution."""

    action: str
    description: str
    command: Optional[str] = None
    priority: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action,
            'description': self.description,
            'command': self.command,
            'priority': self.priority
        }


class TableDumpError(Exception):
    """
    Base exception for all tabledump errors.

    Carries an error code, the operation that failed, the original cause and
    a list of recovery suggestions for the CLI to display.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[RecoverySuggestion]] = None
    ):
        """
        Initialize tabledump error.

        Args:
            message: Human-readable error description
            error_code: Standardized error code
            context: Contextual information about the error
            cause: Original exception that caused this error
            suggestions: List of recovery suggestions
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = suggestions or []

        if not self.context.correlation_id:
            self.context.correlation_id = str(uuid.uuid4())[:8]

    @property
    def operation(self) -> str:
        """Name of the operation that failed."""
        return self.context.operation

    def add_suggestion(self, suggestion: RecoverySuggestion) -> None:
        """Add a recovery suggestion to the error."""
        self.suggestions.append(suggestion)
        self.suggestions.sort(key=lambda s: s.priority)

    def get_user_message(self) -> str:
        """Get user-friendly error message with suggestions."""
        lines = [f"Error: {self.message}"]

        if self.error_code != ErrorCode.UNKNOWN_ERROR:
            lines.append(f"Error Code: {self.error_code.value}")

        if self.suggestions:
            lines.append("\nSuggested solutions:")
            for i, suggestion in enumerate(self.suggestions[:3], 1):
                lines.append(f"  {i}. {suggestion.action}")
                lines.append(f"     {suggestion.description}")
                if suggestion.command:
                    lines.append(f"     Command: {suggestion.command}")

        return "\n".join(lines)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get comprehensive debug information."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'context': self.context.to_dict(),
            'cause': {
                'type': type(self.cause).__name__ if self.cause else None,
                'message': str(self.cause) if self.cause else None
            },
            'suggestions': [s.to_dict() for s in self.suggestions]
        }


class InputError(TableDumpError):
    """Exception for invalid command input (fields files, table names)."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INPUT_MISSING_TABLE,
                 file_path: Optional[str] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext(operation="read input")
        if file_path:
            context.file_path = file_path
        kwargs['context'] = context
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)


class FieldsFileUnreadable(InputError):
    """The fields file could not be read."""

    def __init__(self, file_path: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"error reading fields file: {cause}" if cause else f"error reading fields file: {file_path}",
            error_code=ErrorCode.INPUT_FIELDS_FILE_UNREADABLE,
            file_path=file_path,
            cause=cause,
        )
        self.add_suggestion(RecoverySuggestion(
            action="Check the fields file path",
            description="The file must exist and be readable, with one column name per line."
        ))


class NoFieldsFound(InputError):
    """The fields file contains no non-blank lines."""

    def __init__(self, file_path: str):
        super().__init__(
            f"no fields found in file: {file_path}",
            error_code=ErrorCode.INPUT_NO_FIELDS_FOUND,
            file_path=file_path,
        )


class NoColumnsSpecified(InputError):
    """A format that requires an explicit column list was given none."""

    def __init__(self, format_name: str):
        super().__init__(
            f"{format_name} export requires a fields file listing the columns to export",
            error_code=ErrorCode.INPUT_NO_COLUMNS_SPECIFIED,
        )
        self.context.format_name = format_name
        self.add_suggestion(RecoverySuggestion(
            action="Provide a fields file",
            description="Write one column name per line and pass it with --fields.",
            command=f"tabledump download <table> --format {format_name} --fields columns.txt"
        ))


class SourceError(TableDumpError):
    """Exception for failures talking to the source database."""

    def __init__(self, message: str, operation: str,
                 error_code: ErrorCode = ErrorCode.SOURCE_QUERY_FAILED,
                 table: Optional[str] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext()
        context.operation = operation
        if table:
            context.table = table
        kwargs['context'] = context
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)

        if error_code == ErrorCode.SOURCE_CONNECTION_FAILED:
            self.add_suggestion(RecoverySuggestion(
                action="Check connection settings",
                description="Verify server, port, user, password and database, or pass --url.",
            ))


class ConfigurationError(TableDumpError):
    """Exception for configuration errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE,
                 config_key: Optional[str] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext(operation="load configuration")
        if config_key:
            context.user_context['config_key'] = config_key
        kwargs['context'] = context
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)

        if error_code == ErrorCode.CONFIG_MISSING_REQUIRED:
            self.add_suggestion(RecoverySuggestion(
                action="Set connection parameters",
                description=(
                    "Set MSSQL_SERVER, MSSQL_PORT, MSSQL_USER, MSSQL_PASSWORD and MSSQL_DATABASE "
                    "in the environment or a .env file, or use the matching CLI flags."
                ),
            ))


class DestinationError(TableDumpError):
    """Exception for failures writing the destination file or table."""

    def __init__(self, message: str, operation: str,
                 error_code: ErrorCode = ErrorCode.DEST_WRITE_FAILED,
                 file_path: Optional[str] = None, **kwargs):
        context = kwargs.get('context') or ErrorContext()
        context.operation = operation
        if file_path:
            context.file_path = file_path
        kwargs['context'] = context
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)


class DestinationExists(DestinationError):
    """The destination file exists and overwriting is disabled."""

    def __init__(self, file_path: str):
        super().__init__(
            f"output file already exists: {file_path}",
            operation="create",
            error_code=ErrorCode.DEST_EXISTS,
            file_path=file_path,
        )
        self.add_suggestion(RecoverySuggestion(
            action="Remove or rename the existing file",
            description="Overwriting is disabled by output.overwrite_files in the configuration.",
        ))


class ExportAborted(TableDumpError):
    """The operator declined to overwrite an existing destination."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(
            message,
            error_code=ErrorCode.OPERATION_ABORTED,
            context=ErrorContext(operation="confirm overwrite", file_path=file_path),
        )


class ExportInterrupted(TableDumpError):
    """The export was stopped by an interrupt signal."""

    def __init__(self, message: str = "export aborted by operator", rows_written: int = 0):
        super().__init__(
            message,
            error_code=ErrorCode.OPERATION_INTERRUPTED,
            context=ErrorContext(operation="export"),
        )
        self.rows_written = rows_written


_MISSING_TABLE_PATTERNS = (
    "is not a valid object name",
    "invalid object name",
    "el nombre de objeto",
    "no es válido",
    "does not exist",
    "no existe",
    "invalid table name",
    "could not find object",
    "no such table",
)


def is_missing_table_error(err: Optional[BaseException]) -> bool:
    """Check an error and its causes for messages about a missing or invalid table."""
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        text = str(err).lower()
        if any(pattern in text for pattern in _MISSING_TABLE_PATTERNS):
            return True
        if isinstance(err, TableDumpError) and err.cause is not None:
            err = err.cause
        else:
            err = err.__cause__
    return False
