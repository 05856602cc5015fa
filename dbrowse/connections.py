"""Session registry dispatching lifecycle and query calls to dialect adapters."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .config import ConnectionConfig
from .dialects import DialectAdapter, default_adapters
from .errors import ConnectFailedError, NotConnectedError, QueryExecutionError, SchemaIntrospectionError
from .models import ActiveSession, Dialect, QueryResult, SqlStatement, TableSchemaColumn

LOG = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the live sessions, keyed by connection id.

    A session id is either absent or connected; there is never more than one
    live client per id. The registry is only touched from the event loop
    thread, so no lock is taken. Calls on the same session are not serialized
    here.
    """

    def __init__(self, adapters: Mapping[Dialect, DialectAdapter] | None = None) -> None:
        self._adapters: dict[Dialect, DialectAdapter] = dict(adapters or default_adapters())
        self._sessions: dict[str, ActiveSession] = {}

    @property
    def session_ids(self) -> tuple[str, ...]:
        return tuple(self._sessions)

    def adapter_for(self, dialect: Dialect | str) -> DialectAdapter:
        return self._adapters[Dialect(dialect)]

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._sessions

    def session(self, connection_id: str) -> ActiveSession | None:
        return self._sessions.get(connection_id)

    def require(self, connection_id: str) -> ActiveSession:
        session = self._sessions.get(connection_id)
        if session is None:
            raise NotConnectedError("Not connected to database")
        return session

    async def connect(self, config: ConnectionConfig) -> ActiveSession:
        """Open a session; a second call for a connected id returns the live one."""

        existing = self._sessions.get(config.id)
        if existing is not None:
            LOG.warning("Connection already exists", extra={"connection_id": config.id})
            return existing

        adapter = self.adapter_for(config.type)
        LOG.info(
            "Connecting to database",
            extra={"connection_id": config.id, "type": config.type, "connection_name": config.name},
        )
        try:
            client = await adapter.connect(config)
        except Exception as exc:
            LOG.error("Database connection failed", extra={"connection_id": config.id}, exc_info=True)
            raise ConnectFailedError(f"Failed to connect to database: {exc}") from exc

        existing = self._sessions.get(config.id)
        if existing is not None:
            # Another connect for this id finished while we were awaiting.
            LOG.warning("Discarding duplicate connection", extra={"connection_id": config.id})
            await self._close_quietly(adapter, client, config.id)
            return existing

        session = ActiveSession(
            id=config.id,
            config=config,
            client=client,
            adapter=adapter,
            connected_at=datetime.now(tz=timezone.utc),
        )
        self._sessions[config.id] = session
        LOG.info("Database connection established", extra={"connection_id": config.id})
        return session

    async def disconnect(self, connection_id: str) -> None:
        """Close and forget a session; close failures are logged, never raised."""

        session = self._sessions.pop(connection_id, None)
        if session is None:
            return
        await self._close_quietly(session.adapter, session.client, connection_id)
        LOG.info("Database disconnected", extra={"connection_id": connection_id})

    async def disconnect_all(self) -> None:
        await asyncio.gather(
            *(self.disconnect(connection_id) for connection_id in tuple(self._sessions)),
            return_exceptions=True,
        )

    async def list_tables(self, connection_id: str) -> list[str]:
        session = self.require(connection_id)
        try:
            return await session.adapter.list_tables(session.client)
        except Exception as exc:
            raise QueryExecutionError(f"Failed to list tables: {exc}") from exc

    async def execute_query(self, connection_id: str, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        session = self.require(connection_id)
        try:
            return await session.adapter.execute(session.client, sql, params)
        except Exception as exc:
            raise QueryExecutionError(f"Query execution failed: {exc}") from exc

    async def execute_statement(self, connection_id: str, statement: SqlStatement) -> QueryResult:
        LOG.debug("Executing statement", extra={"connection_id": connection_id, "sql": statement.inline()})
        return await self.execute_query(connection_id, statement.text, statement.params)

    async def get_table_schema(self, connection_id: str, table: str) -> list[TableSchemaColumn]:
        session = self.require(connection_id)
        try:
            return await session.adapter.get_table_schema(session.client, table)
        except Exception as exc:
            raise SchemaIntrospectionError(f"Failed to get table schema: {exc}") from exc

    @staticmethod
    async def _close_quietly(adapter: DialectAdapter, client: Any, connection_id: str) -> None:
        try:
            await adapter.disconnect(client)
        except Exception:
            LOG.warning("Error disconnecting", extra={"connection_id": connection_id}, exc_info=True)


__all__ = ["ConnectionManager"]
