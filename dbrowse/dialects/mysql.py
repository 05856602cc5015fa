"""MySQL/MariaDB adapter backed by a single aiomysql connection."""

from __future__ import annotations

import logging
import ssl
from typing import Any, Sequence

import aiomysql

from ..models import Dialect, QueryResult, TableSchemaColumn
from ..quoting import quote_identifier
from .base import Stopwatch, foreign_key_map, text

LOG = logging.getLogger(__name__)


class MySQLAdapter:
    dialect = Dialect.MYSQL

    _FOREIGN_KEYS_QUERY = """
        SELECT COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME
        FROM information_schema.KEY_COLUMN_USAGE
        WHERE TABLE_SCHEMA = DATABASE()
          AND TABLE_NAME = %s
          AND REFERENCED_TABLE_NAME IS NOT NULL
    """

    def __init__(self, *, connect_timeout: float = 10.0) -> None:
        self._connect_timeout = connect_timeout

    def placeholder(self, index: int, value: Any = None) -> str:
        return "%s"

    def adapt_param(self, value: Any, original: Any, type_name: str) -> Any:
        return value

    async def connect(self, config: Any) -> aiomysql.Connection:
        LOG.info(
            "Creating MySQL connection",
            extra={"host": config.host, "port": config.port, "database": config.database},
        )
        conn = await aiomysql.connect(
            host=config.host,
            port=config.port,
            user=config.username,
            password=config.password,
            db=config.database,
            ssl=ssl.create_default_context() if config.ssl else None,
            connect_timeout=self._connect_timeout,
            autocommit=True,
        )
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchall()
        except Exception:
            conn.close()
            raise
        return conn

    async def disconnect(self, client: aiomysql.Connection) -> None:
        await client.ensure_closed()

    async def list_tables(self, client: aiomysql.Connection) -> list[str]:
        async with client.cursor() as cur:
            await cur.execute("SHOW TABLES")
            rows = await cur.fetchall()
        return sorted(text(row[0]) for row in rows)

    async def execute(self, client: aiomysql.Connection, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        watch = Stopwatch()
        async with client.cursor(aiomysql.DictCursor) as cur:
            await cur.execute(sql, tuple(params) if params else None)
            if cur.description is None:
                return QueryResult(row_count=cur.rowcount, elapsed_ms=watch.elapsed_ms)
            columns = tuple(text(description[0]) for description in cur.description)
            rows = tuple(dict(row) for row in await cur.fetchall())
        return QueryResult(columns=columns, rows=rows, row_count=len(rows), elapsed_ms=watch.elapsed_ms)

    async def get_table_schema(self, client: aiomysql.Connection, table: str) -> list[TableSchemaColumn]:
        async with client.cursor(aiomysql.DictCursor) as cur:
            await cur.execute(self._FOREIGN_KEYS_QUERY, (table,))
            fk_rows = await cur.fetchall()
            await cur.execute(f"DESCRIBE {quote_identifier(self.dialect, table)}")
            column_rows = await cur.fetchall()
        references = foreign_key_map(
            fk_rows,
            column_key="COLUMN_NAME",
            table_key="REFERENCED_TABLE_NAME",
            target_key="REFERENCED_COLUMN_NAME",
        )
        columns: list[TableSchemaColumn] = []
        for row in column_rows:
            name = text(row["Field"])
            columns.append(
                TableSchemaColumn(
                    name=name,
                    type=text(row["Type"]),
                    nullable=text(row["Null"]) == "YES",
                    auto_increment="auto_increment" in text(row.get("Extra")).lower(),
                    primary_key=text(row.get("Key")) == "PRI",
                    foreign_key=references.get(name),
                )
            )
        return columns


__all__ = ["MySQLAdapter"]
