"""Command line driver over :class:`~dbrowse.service.DatabaseService`."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, time, timedelta
from pathlib import Path
from typing import Any, Sequence

from .config import ConnectionStore, load_config
from .errors import DbrowseError
from .formatting import format_temporal
from .models import FilterOperator, QueryFilter, QueryResult, SortDirection
from .service import DatabaseService


def _parse_filter(raw: str) -> QueryFilter:
    """``column:operator:value``; the value may itself contain colons."""

    parts = raw.split(":", 2)
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Expected column:operator:value, got {raw!r}")
    column, operator, value = parts
    try:
        return QueryFilter(column=column, value=value, operator=FilterOperator(operator))
    except ValueError:
        choices = ", ".join(item.value for item in FilterOperator)
        raise argparse.ArgumentTypeError(f"Unknown operator {operator!r} (choose from {choices})") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbrowse", description="Browse and query SQL databases.")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("connections", help="List stored connections")

    tables = commands.add_parser("tables", help="List tables of a connection")
    tables.add_argument("connection_id")

    schema = commands.add_parser("schema", help="Describe the columns of a table")
    schema.add_argument("connection_id")
    schema.add_argument("table")

    query = commands.add_parser("query", help="Run raw SQL")
    query.add_argument("connection_id")
    query.add_argument("sql")

    rows = commands.add_parser("rows", help="Show a page of table rows")
    rows.add_argument("connection_id")
    rows.add_argument("table")
    rows.add_argument("--limit", type=int, default=None)
    rows.add_argument("--offset", type=int, default=0)
    rows.add_argument("--order-by", default=None)
    rows.add_argument("--desc", action="store_true")
    rows.add_argument("--filter", dest="filters", type=_parse_filter, action="append", default=[])
    return parser


def _cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (date, time, timedelta)):
        return format_temporal(value, "")
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def _print_result(result: QueryResult) -> None:
    if not result.columns:
        affected = "unknown" if result.row_count is None else result.row_count
        print(f"OK, {affected} row(s) affected ({result.elapsed_ms} ms)")
        return
    print("\t".join(result.columns))
    for row in result.rows:
        print("\t".join(_cell(row.get(column)) for column in result.columns))
    print(f"({len(result.rows)} row(s), {result.elapsed_ms} ms)")


async def _run(args: argparse.Namespace, service: DatabaseService, store: ConnectionStore) -> None:
    if args.command == "connections":
        for entry in store.all():
            print(f"{entry.id}\t{entry.type}\t{entry.name}")
        return

    await service.connect(args.connection_id)
    if args.command == "tables":
        for table in await service.list_tables(args.connection_id):
            print(table)
    elif args.command == "schema":
        for column in await service.get_table_schema(args.connection_id, args.table):
            flags = [
                "PK" if column.primary_key else "",
                "AUTO" if column.auto_increment else "",
                "NULL" if column.nullable else "NOT NULL",
            ]
            if column.foreign_key is not None:
                flags.append(f"-> {column.foreign_key.table}.{column.foreign_key.column}")
            print("\t".join([column.name, column.type, " ".join(flag for flag in flags if flag)]))
    elif args.command == "query":
        _print_result(await service.execute_query(args.connection_id, args.sql))
    elif args.command == "rows":
        result = await service.get_table_data(
            args.connection_id,
            args.table,
            limit=args.limit,
            offset=args.offset,
            filters=args.filters,
            order_by=args.order_by,
            direction=SortDirection.DESC if args.desc else SortDirection.ASC,
        )
        _print_result(result)


async def _main_async(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    logging.basicConfig(level=config.log_level)
    service = DatabaseService.from_config(config)
    try:
        await _run(args, service, ConnectionStore(config))
    except (DbrowseError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        await service.disconnect_all()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``dbrowse`` console script."""

    args = build_parser().parse_args(argv)
    return asyncio.run(_main_async(args))


__all__ = ["build_parser", "main"]
