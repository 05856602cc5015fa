"""Classification of native column type names into semantic categories.

All checks are substring matches on the lower-cased type name, so parameters
and casing never matter (``VARCHAR(255)``, ``tinyint(1) unsigned``,
``timestamp without time zone``). Several rules overlap; :func:`classify`
applies them in a fixed order so that e.g. ``tinyint(1)`` is a boolean rather
than a number.
"""

from __future__ import annotations

import re
from enum import Enum

_NUMERIC_MARKERS = ("int", "numeric", "decimal", "float", "real", "double")
_TEXT_MARKERS = ("char", "text", "varchar", "character")
_QUOTED_ENUM_VALUE = re.compile("'((?:[^']|'')*)'|\"((?:[^\"]|\"\")*)\"")


class TypeCategory(str, Enum):
    """Semantic category of a column type."""

    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    ENUM = "enum"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"


def is_numeric_type(type_name: str) -> bool:
    lower = type_name.lower()
    return any(marker in lower for marker in _NUMERIC_MARKERS)


def is_boolean_type(type_name: str) -> bool:
    lower = type_name.lower()
    return "bool" in lower or lower == "boolean" or "tinyint(1)" in lower or "bit" in lower


def is_enum_type(type_name: str) -> bool:
    return "enum(" in type_name.lower()


def is_date_type(type_name: str) -> bool:
    """Date without a time-of-day part (``date``)."""

    lower = type_name.lower()
    return "date" in lower and "time" not in lower and "timestamp" not in lower


def is_datetime_type(type_name: str) -> bool:
    """Any type carrying a time-of-day part, including bare ``time``."""

    lower = type_name.lower()
    return "timestamp" in lower or "datetime" in lower or "time" in lower


def is_time_type(type_name: str) -> bool:
    """Time of day without a date part (MySQL/Postgres ``TIME``)."""

    lower = type_name.lower()
    return (
        "time" in lower
        and "date" not in lower
        and "timestamp" not in lower
        and "datetime" not in lower
    )


def is_temporal_type(type_name: str) -> bool:
    return is_date_type(type_name) or is_datetime_type(type_name)


def is_text_type(type_name: str) -> bool:
    """Whether pattern operators can be applied to the column without a cast."""

    lower = type_name.lower()
    return any(marker in lower for marker in _TEXT_MARKERS)


def classify(type_name: str | None) -> TypeCategory:
    """Map a native type name to its category; unknown types count as text."""

    if not type_name:
        return TypeCategory.TEXT
    if is_boolean_type(type_name):
        return TypeCategory.BOOLEAN
    if is_enum_type(type_name):
        return TypeCategory.ENUM
    if is_date_type(type_name):
        return TypeCategory.DATE
    if is_time_type(type_name):
        return TypeCategory.TIME
    if is_datetime_type(type_name):
        return TypeCategory.DATETIME
    if is_numeric_type(type_name):
        return TypeCategory.NUMERIC
    return TypeCategory.TEXT


def enum_values(type_name: str) -> tuple[str, ...]:
    """Parse the value set of an ``enum('a','b')`` type; empty for other types."""

    lower = type_name.lower()
    start = lower.find("enum(")
    if start == -1:
        return ()
    end = type_name.rfind(")")
    if end <= start:
        return ()
    body = type_name[start + len("enum(") : end]
    quoted = _QUOTED_ENUM_VALUE.findall(body)
    if quoted:
        values: list[str] = []
        for single, double in quoted:
            if single or not double:
                values.append(single.replace("''", "'"))
            else:
                values.append(double.replace('""', '"'))
        return tuple(values)
    return tuple(part.strip() for part in body.split(",") if part.strip())


__all__ = [
    "TypeCategory",
    "classify",
    "enum_values",
    "is_boolean_type",
    "is_date_type",
    "is_datetime_type",
    "is_enum_type",
    "is_numeric_type",
    "is_temporal_type",
    "is_text_type",
    "is_time_type",
]
