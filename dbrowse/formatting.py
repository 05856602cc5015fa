"""Normalization of edited values and row snapshots into SQL values.

Two entry points feed the statement builders:

* :func:`coerce_input` handles strings typed by a user (INSERT values, UPDATE
  ``SET`` values).
* :func:`coerce_snapshot` handles values previously read back from the driver
  and used to re-identify a row in a ``WHERE`` clause.

Both return either a :class:`SqlKeyword` that is emitted inline or a plain
Python value that is bound as a parameter. Temporal values go through the same
normalization on both paths so an UPDATE matches the row it was just read
from. :func:`format_value` renders the result as a SQL literal.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from .coltypes import TypeCategory, classify, is_date_type, is_datetime_type, is_time_type
from .models import TableSchemaColumn

_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2})?")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_SECONDS = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_DATETIME_MINUTES = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")
_TIME_SECONDS = re.compile(r"^\d{2}:\d{2}:\d{2}$")
_TIME_MINUTES = re.compile(r"^\d{2}:\d{2}$")


class SqlKeyword(str, Enum):
    """Values that are always written inline rather than bound."""

    NULL = "NULL"
    TRUE = "TRUE"
    FALSE = "FALSE"


def parse_number(raw: str) -> int | float | None:
    """Parse a whole-string decimal number; ``None`` when it is not one."""

    text = raw.strip()
    if not _NUMBER.match(text):
        return None
    if any(ch in text for ch in ".eE"):
        return float(text)
    return int(text)


def looks_like_iso_date(raw: str) -> bool:
    """True for ``YYYY-MM-DD`` prefixed strings, optionally followed by ``THH:MM``."""

    return bool(_ISO_DATE_PREFIX.match(raw))


def _local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _format_time(value: time | datetime) -> str:
    return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"


def _format_datetime(value: datetime) -> str:
    return f"{_format_date(value)} {_format_time(value)}"


def _format_timedelta(value: timedelta) -> str:
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"


def normalize_time(raw: str) -> str:
    if _TIME_SECONDS.match(raw):
        return raw
    if _TIME_MINUTES.match(raw):
        return f"{raw}:00"
    return raw


def normalize_datetime(raw: str) -> str:
    normalized = raw.replace("T", " ", 1)
    if _DATETIME_SECONDS.match(normalized):
        return normalized
    if _DATETIME_MINUTES.match(normalized):
        return f"{normalized}:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return normalized
    return _format_datetime(_local(parsed))


def normalize_date(raw: str) -> str:
    if _DATE_ONLY.match(raw):
        return raw
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return raw
    return _format_date(_local(parsed))


def format_temporal(value: Any, type_name: str) -> str:
    """Render a date, date-time or time value in the canonical string form.

    Native ``date``/``datetime`` values are taken at local wall-clock time.
    Strings that cannot be parsed are returned unchanged.
    """

    if isinstance(value, datetime):
        local = _local(value)
        if is_date_type(type_name):
            return _format_date(local)
        if is_time_type(type_name):
            return _format_time(local)
        if is_datetime_type(type_name):
            return _format_datetime(local)
        return local.isoformat()
    if isinstance(value, date):
        if is_datetime_type(type_name) and not is_time_type(type_name):
            return _format_datetime(datetime(value.year, value.month, value.day))
        return _format_date(value)
    if isinstance(value, time):
        return _format_time(value)
    if isinstance(value, timedelta):
        return _format_timedelta(value)

    raw = str(value)
    if is_time_type(type_name):
        return normalize_time(raw)
    if is_date_type(type_name):
        return normalize_date(raw)
    if is_datetime_type(type_name):
        return normalize_datetime(raw)
    return raw


def coerce_input(value: str, column: TableSchemaColumn | None) -> Any:
    """Normalize an edited cell string for a ``SET`` or ``VALUES`` position."""

    type_name = column.type if column else ""
    nullable = column.nullable if column else False
    if value == "" and nullable:
        return SqlKeyword.NULL
    category = classify(type_name)
    if category is TypeCategory.BOOLEAN and value in ("true", "false"):
        return SqlKeyword.TRUE if value == "true" else SqlKeyword.FALSE
    if category is TypeCategory.NUMERIC:
        if value == "":
            return SqlKeyword.NULL
        number = parse_number(value)
        return value if number is None else number
    if category in (TypeCategory.DATE, TypeCategory.DATETIME, TypeCategory.TIME):
        return format_temporal(value, type_name)
    return value


def coerce_snapshot(value: Any, column: TableSchemaColumn | None) -> Any:
    """Normalize a value read from the database for a ``WHERE`` equality term.

    ``None`` maps to :attr:`SqlKeyword.NULL`; callers emit ``IS NULL`` for it.
    """

    type_name = column.type if column else ""
    if value is None:
        return SqlKeyword.NULL
    if isinstance(value, bool):
        return SqlKeyword.TRUE if value else SqlKeyword.FALSE
    if isinstance(value, (int, float, Decimal)):
        return value
    category = classify(type_name)
    if category is TypeCategory.NUMERIC and isinstance(value, str):
        number = parse_number(value)
        return value if number is None else number
    if isinstance(value, (date, time, timedelta)) or category in (
        TypeCategory.DATE,
        TypeCategory.DATETIME,
        TypeCategory.TIME,
    ):
        return format_temporal(value, type_name)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def render_literal(value: Any) -> str:
    """Render an already-coerced value as inline SQL."""

    if value is None:
        return SqlKeyword.NULL.value
    if isinstance(value, SqlKeyword):
        return value.value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return f"'{_format_datetime(_local(value))}'"
    if isinstance(value, date):
        return f"'{_format_date(value)}'"
    if isinstance(value, time):
        return f"'{_format_time(value)}'"
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    return "'" + str(value).replace("'", "''") + "'"


def format_value(value: str | datetime | date | None, column_type: str, *, nullable: bool = False) -> str:
    """Format an edited value as a SQL literal fragment for a column type."""

    if value is None:
        return SqlKeyword.NULL.value
    column = TableSchemaColumn(name="", type=column_type, nullable=nullable)
    if isinstance(value, (datetime, date)):
        return render_literal(format_temporal(value, column_type))
    return render_literal(coerce_input(value, column))


__all__ = [
    "SqlKeyword",
    "coerce_input",
    "coerce_snapshot",
    "format_temporal",
    "format_value",
    "looks_like_iso_date",
    "normalize_date",
    "normalize_datetime",
    "normalize_time",
    "parse_number",
    "render_literal",
]
