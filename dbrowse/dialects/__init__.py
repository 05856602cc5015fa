"""Dialect adapters and the lookup used to pick one per session."""

from __future__ import annotations

from typing import Mapping

from ..models import Dialect
from .base import DialectAdapter
from .mysql import MySQLAdapter
from .postgres import PostgresAdapter
from .sqlite import SQLiteAdapter


def default_adapters(
    *,
    pool_max_size: int = 10,
    connect_timeout: float = 10.0,
) -> Mapping[Dialect, DialectAdapter]:
    """One adapter instance per dialect, sharing driver settings."""

    return {
        Dialect.POSTGRES: PostgresAdapter(pool_max_size=pool_max_size, connect_timeout=connect_timeout),
        Dialect.MYSQL: MySQLAdapter(connect_timeout=connect_timeout),
        Dialect.SQLITE: SQLiteAdapter(connect_timeout=connect_timeout),
    }


__all__ = [
    "DialectAdapter",
    "MySQLAdapter",
    "PostgresAdapter",
    "SQLiteAdapter",
    "default_adapters",
]
