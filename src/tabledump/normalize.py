"""
Value Normalizer

Converts raw values returned by a database driver into the canonical set
{None, int, float, str}. Both the positional and the mapping views of a row
go through normalize_value, so a raw value always yields the same canonical
value whichever view asks for it.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Sequence, Union

CanonicalValue = Union[None, int, float, str]

DATE_FORMAT = "%Y-%m-%d"

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"[+-]?[0-9]+\Z")


def parse_opaque(text: str) -> CanonicalValue:
    """
    Speculatively reinterpret opaque driver text.

    Integer parse first, then float parse, then the text itself. Some drivers
    hand numeric columns over as byte buffers, so this order must not change.
    """
    if _INTEGER_RE.match(text):
        number = int(text)
        if INT64_MIN <= number <= INT64_MAX:
            return number
    # float() tolerates surrounding whitespace and digit underscores, a plain
    # decimal parser does not
    if text and text == text.strip() and "_" not in text:
        try:
            return float(text)
        except ValueError:
            pass
    return text


def normalize_value(value: Any) -> CanonicalValue:
    """Normalize one raw column value."""
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return parse_opaque(bytes(value).decode("utf-8", errors="replace"))
    if isinstance(value, Decimal):
        return parse_opaque(str(value))
    if value is None or isinstance(value, (int, float, str)):
        return value
    # UUID, time, timedelta and other driver objects
    return str(value)


def normalize_row(raw_row: Sequence[Any]) -> List[CanonicalValue]:
    """Positional view of a row, aligned to the column set."""
    return [normalize_value(value) for value in raw_row]


def normalize_record(columns: Sequence[str], raw_row: Sequence[Any]) -> Dict[str, CanonicalValue]:
    """Mapping view of a row, keyed by column name in column order."""
    return {column: normalize_value(value) for column, value in zip(columns, raw_row)}


def format_value(value: CanonicalValue) -> str:
    """Render a canonical value for delimited text output."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)
