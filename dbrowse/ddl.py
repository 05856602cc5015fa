"""CREATE/ALTER/DROP TABLE statements for the table management actions."""

from __future__ import annotations

import re
from typing import Sequence

from .models import ColumnDraft, Dialect
from .quoting import quote_identifier

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(table: str) -> None:
    if not table:
        raise ValueError("Table name is required")
    if not TABLE_NAME_PATTERN.match(table):
        raise ValueError(
            "Table names must start with a letter or underscore and use only letters, numbers, and underscores."
        )


def validate_columns(columns: Sequence[ColumnDraft]) -> None:
    if not columns:
        raise ValueError("At least one column is required")
    seen: set[str] = set()
    for column in columns:
        name = column.name.strip()
        if not name:
            raise ValueError("All columns must have a name")
        if name.lower() in seen:
            raise ValueError("Column names must be unique")
        seen.add(name.lower())


def _column_definition(dialect: Dialect, column: ColumnDraft, composite_key: bool) -> str:
    name = quote_identifier(dialect, column.name.strip())
    type_name = column.type.strip()

    if column.auto_increment:
        if dialect is Dialect.SQLITE:
            return f"{name} INTEGER PRIMARY KEY AUTOINCREMENT"
        if dialect is Dialect.POSTGRES:
            type_name = "bigserial" if "bigint" in type_name.lower() else "serial"

    definition = f"{name} {type_name}"
    if not composite_key and (column.primary_key or column.auto_increment):
        definition += " PRIMARY KEY"
    if dialect is Dialect.MYSQL and column.auto_increment:
        definition += " AUTO_INCREMENT"
    if not (column.nullable or column.primary_key or column.auto_increment):
        definition += " NOT NULL"
    return definition


def build_create_table(dialect: Dialect | str, table: str, columns: Sequence[ColumnDraft]) -> str:
    """Multi-line ``CREATE TABLE``; more than one key column yields a table-level key."""

    dialect = Dialect(dialect)
    validate_table_name(table)
    validate_columns(columns)

    key_columns = [column.name.strip() for column in columns if column.primary_key or column.auto_increment]
    composite_key = len(key_columns) > 1
    definitions = [_column_definition(dialect, column, composite_key) for column in columns]
    if composite_key:
        keys = ", ".join(quote_identifier(dialect, name) for name in key_columns)
        definitions.append(f"PRIMARY KEY ({keys})")
    body = ",\n  ".join(definitions)
    return f"CREATE TABLE {quote_identifier(dialect, table)} (\n  {body}\n);"


def build_rename_table(dialect: Dialect | str, table: str, new_name: str) -> str:
    validate_table_name(new_name)
    return f"ALTER TABLE {quote_identifier(dialect, table)} RENAME TO {quote_identifier(dialect, new_name)};"


def build_drop_table(dialect: Dialect | str, table: str, *, cascade: bool = False) -> str:
    """``DROP TABLE``; ``CASCADE`` is only emitted where the dialect accepts it."""

    dialect = Dialect(dialect)
    suffix = " CASCADE" if cascade and dialect is not Dialect.SQLITE else ""
    return f"DROP TABLE {quote_identifier(dialect, table)}{suffix};"


__all__ = [
    "TABLE_NAME_PATTERN",
    "build_create_table",
    "build_drop_table",
    "build_rename_table",
    "validate_columns",
    "validate_table_name",
]
