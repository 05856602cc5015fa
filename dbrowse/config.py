"""App configuration loading helpers and the connection store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Literal, Mapping, Union

import tomllib
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import ConnectionNotFoundError

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "dbrowse" / "config.toml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class _ConnectionConfigBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class PostgresConnectionConfig(_ConnectionConfigBase):
    """PostgreSQL server reached over the network."""

    type: Literal["postgres"] = "postgres"
    host: str = "localhost"
    port: int = 5432
    database: str
    username: str
    password: str = ""
    ssl: bool = False


class MySQLConnectionConfig(_ConnectionConfigBase):
    """MySQL/MariaDB server reached over the network."""

    type: Literal["mysql"] = "mysql"
    host: str = "localhost"
    port: int = 3306
    database: str
    username: str
    password: str = ""
    ssl: bool = False


class SQLiteConnectionConfig(_ConnectionConfigBase):
    """SQLite database file."""

    type: Literal["sqlite"] = "sqlite"
    file_path: str


ConnectionConfig = Annotated[
    Union[PostgresConnectionConfig, MySQLConnectionConfig, SQLiteConnectionConfig],
    Field(discriminator="type"),
]

_CONNECTION_ADAPTER: TypeAdapter[Any] = TypeAdapter(ConnectionConfig)


def parse_connection(data: Mapping[str, Any]) -> ConnectionConfig:
    """Validate a raw mapping into the matching connection config model."""

    return _CONNECTION_ADAPTER.validate_python(dict(data))


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    log_level: LogLevel = "WARNING"
    page_size: int = Field(default=100, gt=0)
    foreign_key_preview_limit: int = Field(default=5, gt=0, le=50)
    pool_max_size: int = Field(default=10, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    connections: list[ConnectionConfig] = Field(default_factory=list)

    def connection(self, connection_id: str) -> ConnectionConfig | None:
        for entry in self.connections:
            if entry.id == connection_id:
                return entry
        return None

    def with_connection(self, connection: ConnectionConfig) -> AppConfig:
        """Return a copy with the connection added, replacing any entry with the same id."""

        connections = [entry for entry in self.connections if entry.id != connection.id]
        connections.append(connection)
        return self.model_copy(update={"connections": connections})

    def without_connection(self, connection_id: str) -> AppConfig:
        connections = [entry for entry in self.connections if entry.id != connection_id]
        return self.model_copy(update={"connections": connections})


class ConnectionStore:
    """Read-only provider of connection configs keyed by id."""

    def __init__(self, config: AppConfig) -> None:
        self._connections = {entry.id: entry for entry in config.connections}

    def get(self, connection_id: str) -> ConnectionConfig:
        try:
            return self._connections[connection_id]
        except KeyError:
            raise ConnectionNotFoundError(f"Connection not found: {connection_id}") from None

    def all(self) -> tuple[ConnectionConfig, ...]:
        return tuple(self._connections.values())


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    target = path or CONFIG_FILE
    try:
        with target.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file", extra={"path": str(target)})
        return AppConfig()

    data: dict[str, object] = {}
    level = raw.get("log_level")
    if isinstance(level, str):
        data["log_level"] = level.strip().upper()
    for key in ("page_size", "foreign_key_preview_limit", "pool_max_size"):
        value = raw.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    timeout = raw.get("connect_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        data["connect_timeout"] = float(timeout)

    connections: list[ConnectionConfig] = []
    entries = raw.get("connections")
    if isinstance(entries, list):
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                connections.append(parse_connection(entry))
            except ValidationError as exc:
                LOG.warning(
                    "Skipping invalid connection entry",
                    extra={"connection": entry.get("id") or entry.get("name"), "errors": exc.error_count()},
                )
    data["connections"] = connections

    try:
        return AppConfig(**data)
    except ValidationError:
        LOG.warning("Ignoring invalid settings in config file", extra={"path": str(target)})
        return AppConfig(connections=connections)


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"log_level = {_toml_str(config.log_level)}",
        f"page_size = {config.page_size}",
        f"foreign_key_preview_limit = {config.foreign_key_preview_limit}",
        f"pool_max_size = {config.pool_max_size}",
        f"connect_timeout = {config.connect_timeout}",
    ]
    for connection in config.connections:
        lines.append("")
        lines.append("[[connections]]")
        for key, value in connection.model_dump().items():
            if isinstance(value, bool):
                lines.append(f"{key} = {str(value).lower()}")
            elif isinstance(value, int):
                lines.append(f"{key} = {value}")
            elif isinstance(value, str) and (value or key != "password"):
                lines.append(f"{key} = {_toml_str(value)}")
    target.write_text("\n".join(lines) + "\n")


def _toml_str(value: str) -> str:
    return json.dumps(value)


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ConnectionConfig",
    "ConnectionStore",
    "MySQLConnectionConfig",
    "PostgresConnectionConfig",
    "SQLiteConnectionConfig",
    "load_config",
    "parse_connection",
    "save_config",
]
