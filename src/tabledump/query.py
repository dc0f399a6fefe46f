"""
Query Builder

Builds the SELECT statement for an export. The table name is bracket-quoted
mechanically and is not validated; column names from a fields file are used
verbatim, so a bad name surfaces as a query error from the database.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from tabledump.core.exceptions import FieldsFileUnreadable, NoFieldsFound

logger = logging.getLogger("tabledump.query")


def quote_table(table: str) -> str:
    """Bracket-quote a table identifier."""
    return f"[{table}]"


def read_fields_file(fields_file: Union[str, Path]) -> List[str]:
    """
    Read a newline-delimited column list.

    Lines are stripped and blank lines dropped; order is preserved and
    duplicates are kept.

    Raises:
        FieldsFileUnreadable: If the file cannot be read
        NoFieldsFound: If no non-blank lines remain
    """
    try:
        content = Path(fields_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FieldsFileUnreadable(str(fields_file), cause=e) from e

    fields = [line.strip() for line in content.split("\n")]
    fields = [name for name in fields if name]
    if not fields:
        raise NoFieldsFound(str(fields_file))

    logger.debug(f"Read {len(fields)} field(s) from {fields_file}")
    return fields


def build_query(table: str, fields_file: Optional[Union[str, Path]] = None) -> str:
    """Build the SELECT statement for a table and optional fields file."""
    if fields_file:
        fields = read_fields_file(fields_file)
        return f"SELECT {', '.join(fields)} FROM {quote_table(table)}"
    return f"SELECT * FROM {quote_table(table)}"


def build_count_query(table: str) -> str:
    return f"SELECT COUNT(*) FROM {quote_table(table)}"
