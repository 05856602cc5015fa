"""Light inspection of raw SQL text using sqlglot."""

from __future__ import annotations

import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

_ROW_KEYWORDS = {"select", "with", "show", "values", "table", "explain"}
_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_RETURNING = re.compile(r"\breturning\b", re.IGNORECASE)

_IDENTIFIER_PART = r'(?:`[^`]+`|"[^"]+"|\[[^\]]+\]|[A-Za-z0-9_]+)'
_IDENTIFIER = rf"({_IDENTIFIER_PART}(?:\.{_IDENTIFIER_PART})*)"
_TARGET_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rf"\bupdate\s+{_IDENTIFIER}",
        rf"\bcreate\s+table\s+(?:if\s+not\s+exists\s+)?{_IDENTIFIER}",
        rf"\binsert\s+into\s+{_IDENTIFIER}",
        rf"\bdelete\s+from\s+{_IDENTIFIER}",
        rf"\bfrom\s+{_IDENTIFIER}",
    )
)


def strip_comments(sql: str) -> str:
    return _BLOCK_COMMENT.sub("", _LINE_COMMENT.sub("", sql))


def _parse(statement: str, dialect: str) -> exp.Expression | None:
    try:
        return sqlglot.parse_one(statement, read=dialect)
    except SqlglotError:
        return None


def returns_rows(sql: str, dialect: str = "postgres") -> bool:
    """Whether the statement produces a result set.

    Queries and ``RETURNING`` DML return rows; DDL and plain DML do not.
    """

    statement = strip_comments(sql).strip()
    if not statement:
        return False
    head = statement.lstrip("(").split(None, 1)[0].lower()
    if head in _ROW_KEYWORDS:
        return True
    tree = _parse(statement, dialect)
    if tree is None:
        return bool(_RETURNING.search(statement))
    if isinstance(tree, exp.Query):
        return True
    return tree.find(exp.Returning) is not None


def target_table(sql: str, dialect: str = "postgres") -> str | None:
    """Name of the table a statement primarily touches, unquoted and unqualified."""

    statement = " ".join(strip_comments(sql).split())
    if not statement:
        return None
    tree = _parse(statement, dialect)
    if tree is not None:
        table: exp.Table | None = None
        if isinstance(tree, (exp.Update, exp.Insert, exp.Delete)):
            table = tree.find(exp.Table)
        elif isinstance(tree, exp.Create) and str(tree.args.get("kind", "")).upper() == "TABLE":
            table = tree.find(exp.Table)
        else:
            source = tree.find(exp.From)
            if source is not None:
                table = source.find(exp.Table)
        if table is not None and table.name:
            return table.name
    for pattern in _TARGET_PATTERNS:
        match = pattern.search(statement)
        if match:
            return _normalize_identifier(match.group(1))
    return None


def _normalize_identifier(value: str) -> str:
    last = value.rstrip(";,").strip().split(".")[-1].strip()
    if len(last) >= 2 and (last[0], last[-1]) in {("`", "`"), ('"', '"'), ("[", "]")}:
        return last[1:-1]
    return last


__all__ = ["returns_rows", "strip_comments", "target_table"]
