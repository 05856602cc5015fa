"""Adapter protocol implemented once per SQL engine."""

from __future__ import annotations

import time
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

from ..models import Dialect, ForeignKeyRef, QueryResult, TableSchemaColumn


@runtime_checkable
class DialectAdapter(Protocol):
    """Everything the engine needs from one database engine.

    Adapters are stateless apart from driver settings; the live handle returned
    by :meth:`connect` is passed back into every other call.
    """

    dialect: Dialect

    def placeholder(self, index: int, value: Any = None) -> str:
        """Placeholder for the ``index``-th (1-based) bound parameter holding ``value``."""

    def adapt_param(self, value: Any, original: Any, type_name: str) -> Any:
        """Final conversion of a normalized value before it is bound."""

    async def connect(self, config: Any) -> Any:
        """Open a client and prove it works with one round trip."""

    async def disconnect(self, client: Any) -> None:
        """Release every resource held by the client."""

    async def list_tables(self, client: Any) -> list[str]:
        """User tables in alphabetical order."""

    async def execute(self, client: Any, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """Run SQL; statements without a result set return empty columns/rows."""

    async def get_table_schema(self, client: Any, table: str) -> list[TableSchemaColumn]:
        """Introspect columns and foreign keys of one table."""


class Stopwatch:
    """Measures elapsed wall time in milliseconds."""

    def __init__(self) -> None:
        self._started = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._started) * 1000)


def foreign_key_map(
    rows: Iterable[Mapping[str, Any]],
    *,
    column_key: str,
    table_key: str,
    target_key: str,
) -> dict[str, ForeignKeyRef]:
    """Map local column names to the column they reference."""

    references: dict[str, ForeignKeyRef] = {}
    for row in rows:
        references[text(row[column_key])] = ForeignKeyRef(
            table=text(row[table_key]),
            column=text(row[target_key]),
        )
    return references


def text(value: Any) -> str:
    """Catalog values may arrive as bytes depending on server and driver."""

    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return "" if value is None else str(value)


__all__ = ["DialectAdapter", "Stopwatch", "foreign_key_map", "text"]
