"""Exception types surfaced by the engine."""

from __future__ import annotations


class DbrowseError(RuntimeError):
    """Base class for engine failures; ``str(exc)`` is the user-facing message."""


class ConnectionNotFoundError(DbrowseError):
    """Raised when no stored configuration exists for a connection id."""


class NotConnectedError(DbrowseError):
    """Raised when a query-surface call targets an id without a live session."""


class ConnectFailedError(DbrowseError):
    """Raised when an adapter cannot open a connection."""


class QueryExecutionError(DbrowseError):
    """Raised when SQL fails to execute."""


class SchemaIntrospectionError(DbrowseError):
    """Raised when catalog queries for a table fail."""


__all__ = [
    "ConnectFailedError",
    "ConnectionNotFoundError",
    "DbrowseError",
    "NotConnectedError",
    "QueryExecutionError",
    "SchemaIntrospectionError",
]
