"""Shared dataclasses used across the adapter, manager and query modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from .coltypes import enum_values

Row = dict[str, Any]


class Dialect(str, Enum):
    """Supported SQL engines."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class FilterOperator(str, Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class ForeignKeyRef:
    """Column referenced by a foreign key."""

    table: str
    column: str


@dataclass(frozen=True, slots=True)
class TableSchemaColumn:
    """Uniform description of one column, whatever the dialect."""

    name: str
    type: str
    nullable: bool
    auto_increment: bool = False
    primary_key: bool = False
    foreign_key: ForeignKeyRef | None = None

    @property
    def enum_values(self) -> tuple[str, ...]:
        return enum_values(self.type)


@dataclass(frozen=True, slots=True)
class QueryFilter:
    column: str
    value: str
    operator: FilterOperator = FilterOperator.CONTAINS

    def __post_init__(self) -> None:
        if not isinstance(self.operator, FilterOperator):
            object.__setattr__(self, "operator", FilterOperator(self.operator))


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized query output; row values are left exactly as the driver returned them."""

    columns: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()
    row_count: int | None = None
    elapsed_ms: int = 0


@dataclass(frozen=True, slots=True)
class ForeignKeyRows:
    rows: tuple[Row, ...]
    has_more: bool


@dataclass(frozen=True, slots=True)
class DeleteResult:
    success: bool
    deleted_count: int


@dataclass(frozen=True, slots=True)
class ColumnDraft:
    """Column definition used when creating a table."""

    name: str
    type: str
    nullable: bool = True
    primary_key: bool = False
    auto_increment: bool = False


@dataclass(frozen=True, slots=True)
class SqlStatement:
    """SQL text plus the values bound to its placeholders."""

    text: str
    params: tuple[Any, ...] = field(default_factory=tuple)
    literal: str | None = None

    def inline(self) -> str:
        """The statement with parameters rendered as literals (for logs)."""

        return self.literal if self.literal is not None else self.text


@dataclass(frozen=True, slots=True)
class ActiveSession:
    """Live session entry; ``client`` is owned by this entry alone."""

    id: str
    config: Any
    client: Any
    adapter: Any
    connected_at: datetime

    @property
    def dialect(self) -> Dialect:
        return self.adapter.dialect


def find_column(schema: Sequence[TableSchemaColumn], name: str) -> TableSchemaColumn | None:
    for column in schema:
        if column.name == name:
            return column
    return None


__all__ = [
    "ActiveSession",
    "ColumnDraft",
    "DeleteResult",
    "Dialect",
    "FilterOperator",
    "ForeignKeyRef",
    "ForeignKeyRows",
    "QueryFilter",
    "QueryResult",
    "Row",
    "SortDirection",
    "SqlStatement",
    "TableSchemaColumn",
    "find_column",
]
