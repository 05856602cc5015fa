"""PostgreSQL adapter backed by an asyncpg connection pool."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Sequence

import asyncpg

from ..coltypes import TypeCategory, classify
from ..models import Dialect, QueryResult, TableSchemaColumn
from ..statements import returns_rows
from .base import Stopwatch, foreign_key_map, text

LOG = logging.getLogger(__name__)

_TRUTHY = {"true", "t", "yes", "y", "on", "1"}
_FALSY = {"false", "f", "no", "n", "off", "0"}


class PostgresAdapter:
    """Runs statements through an asyncpg pool, one pool per session."""

    dialect = Dialect.POSTGRES

    _TABLES_QUERY = """
        SELECT tablename
        FROM pg_catalog.pg_tables
        WHERE schemaname = 'public'
        ORDER BY tablename
    """

    _FOREIGN_KEYS_QUERY = """
        SELECT kcu.column_name,
               ccu.table_name AS referenced_table,
               ccu.column_name AS referenced_column
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
          ON tc.constraint_name = kcu.constraint_name
         AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage ccu
          ON ccu.constraint_name = tc.constraint_name
         AND ccu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY'
          AND tc.table_schema = 'public'
          AND tc.table_name = $1
    """

    _COLUMNS_QUERY = """
        SELECT c.column_name,
               c.data_type,
               c.is_nullable,
               c.column_default,
               c.is_identity,
               EXISTS (
                   SELECT 1
                   FROM information_schema.table_constraints tc
                   JOIN information_schema.key_column_usage kcu
                     ON tc.constraint_name = kcu.constraint_name
                    AND tc.table_schema = kcu.table_schema
                    AND tc.table_name = kcu.table_name
                   WHERE tc.constraint_type = 'PRIMARY KEY'
                     AND tc.table_schema = c.table_schema
                     AND tc.table_name = c.table_name
                     AND kcu.column_name = c.column_name
               ) AS is_primary
        FROM information_schema.columns c
        WHERE c.table_schema = 'public'
          AND c.table_name = $1
        ORDER BY c.ordinal_position
    """

    def __init__(self, *, pool_max_size: int = 10, connect_timeout: float = 10.0) -> None:
        self._pool_max_size = pool_max_size
        self._connect_timeout = connect_timeout

    def placeholder(self, index: int, value: Any = None) -> str:
        if isinstance(value, Decimal):
            return f"${index}::numeric"
        return f"${index}"

    def adapt_param(self, value: Any, original: Any, type_name: str) -> Any:
        """asyncpg encodes parameters by their server-side type, so temporal
        and boolean strings are turned into the matching Python objects."""

        category = classify(type_name)
        if category in (TypeCategory.DATE, TypeCategory.DATETIME, TypeCategory.TIME):
            if isinstance(original, (date, time)):
                return original
            if isinstance(value, str):
                return _parse_temporal(value, category, type_name)
        if category is TypeCategory.NUMERIC and isinstance(value, float) and "int" in type_name.lower():
            # int2/int4/int8 parameters only accept Python ints.
            return int(value) if value.is_integer() else Decimal(str(value))
        if category is TypeCategory.BOOLEAN and isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUTHY:
                return True
            if lowered in _FALSY:
                return False
        return value

    async def connect(self, config: Any) -> asyncpg.Pool:
        LOG.info(
            "Creating PostgreSQL pool",
            extra={"host": config.host, "port": config.port, "database": config.database},
        )
        pool = await asyncpg.create_pool(
            host=config.host,
            port=config.port,
            user=config.username,
            password=config.password or None,
            database=config.database,
            ssl="require" if config.ssl else False,
            min_size=1,
            max_size=self._pool_max_size,
            timeout=self._connect_timeout,
        )
        try:
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except Exception:
            await pool.close()
            raise
        return pool

    async def disconnect(self, client: asyncpg.Pool) -> None:
        await client.close()

    async def list_tables(self, client: asyncpg.Pool) -> list[str]:
        rows = await client.fetch(self._TABLES_QUERY)
        return [str(row["tablename"]) for row in rows]

    async def execute(self, client: asyncpg.Pool, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        watch = Stopwatch()
        async with client.acquire() as conn:
            if returns_rows(sql, self.dialect.value):
                statement = await conn.prepare(sql)
                records = await statement.fetch(*params)
                columns = tuple(attribute.name for attribute in statement.get_attributes())
                rows = tuple(dict(record.items()) for record in records)
                return QueryResult(columns=columns, rows=rows, row_count=len(rows), elapsed_ms=watch.elapsed_ms)
            status = await conn.execute(sql, *params)
        return QueryResult(row_count=_affected_rows(status), elapsed_ms=watch.elapsed_ms)

    async def get_table_schema(self, client: asyncpg.Pool, table: str) -> list[TableSchemaColumn]:
        async with client.acquire() as conn:
            fk_rows = await conn.fetch(self._FOREIGN_KEYS_QUERY, table)
            column_rows = await conn.fetch(self._COLUMNS_QUERY, table)
        references = foreign_key_map(
            fk_rows,
            column_key="column_name",
            table_key="referenced_table",
            target_key="referenced_column",
        )
        columns: list[TableSchemaColumn] = []
        for row in column_rows:
            name = text(row["column_name"])
            default = row["column_default"]
            columns.append(
                TableSchemaColumn(
                    name=name,
                    type=text(row["data_type"]),
                    nullable=row["is_nullable"] == "YES",
                    auto_increment=(isinstance(default, str) and default.startswith("nextval("))
                    or row["is_identity"] == "YES",
                    primary_key=row["is_primary"] is True,
                    foreign_key=references.get(name),
                )
            )
        return columns


def _parse_temporal(value: str, category: TypeCategory, type_name: str) -> Any:
    try:
        if category is TypeCategory.DATE:
            return date.fromisoformat(value)
        if category is TypeCategory.TIME:
            return time.fromisoformat(value)
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return value
    if "with time zone" in type_name.lower() and parsed.tzinfo is None:
        return parsed.astimezone()
    return parsed


def _affected_rows(status: str) -> int | None:
    """Row count from a command tag such as ``UPDATE 3`` or ``INSERT 0 1``."""

    parts = (status or "").split()
    if len(parts) >= 2 and parts[-1].isdigit():
        return int(parts[-1])
    return None


__all__ = ["PostgresAdapter"]
