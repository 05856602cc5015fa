"""Identifier quoting rules per dialect."""

from __future__ import annotations

from .models import Dialect


def quote_identifier(dialect: Dialect | str, name: str) -> str:
    """Quote a table or column name, doubling any embedded quote character.

    Postgres and SQLite use double quotes, MySQL uses backticks. None of the
    engines can bind identifiers as parameters, so every name interpolated into
    generated SQL must pass through here.
    """

    if Dialect(dialect) is Dialect.MYSQL:
        return "`" + name.replace("`", "``") + "`"
    return '"' + name.replace('"', '""') + '"'


__all__ = ["quote_identifier"]
