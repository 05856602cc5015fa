"""Builders for the SQL statements issued on behalf of the table browser.

Every builder returns a :class:`~dbrowse.models.SqlStatement`. Identifiers are
quoted inline, ``NULL``/``TRUE``/``FALSE`` are written as keywords and every
other value is bound through the adapter's placeholder style.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence

from .coltypes import TypeCategory, classify, is_text_type
from .dialects import DialectAdapter
from .formatting import (
    SqlKeyword,
    coerce_input,
    coerce_snapshot,
    looks_like_iso_date,
    parse_number,
    render_literal,
)
from .models import (
    Dialect,
    FilterOperator,
    ForeignKeyRef,
    QueryFilter,
    SortDirection,
    SqlStatement,
    TableSchemaColumn,
    find_column,
)
from .quoting import quote_identifier

_PATTERN_OPERATORS = {
    FilterOperator.CONTAINS: "%{}%",
    FilterOperator.STARTS_WITH: "{}%",
    FilterOperator.ENDS_WITH: "%{}",
}
_COMPARISON_OPERATORS = {
    FilterOperator.GT: ">",
    FilterOperator.LT: "<",
    FilterOperator.GTE: ">=",
    FilterOperator.LTE: "<=",
}


class StatementBuilder:
    """Accumulates SQL text and bound values for a single statement."""

    def __init__(self, adapter: DialectAdapter) -> None:
        self._adapter = adapter
        self._dialect = Dialect(adapter.dialect)
        self._fragments: list[tuple[str, bool]] = []
        self._literal: list[str] = []
        self._params: list[Any] = []

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def sql(self, fragment: str) -> StatementBuilder:
        self._fragments.append((fragment, False))
        self._literal.append(fragment)
        return self

    def ident(self, name: str) -> StatementBuilder:
        return self.sql(quote_identifier(self._dialect, name))

    def value(self, value: Any, *, original: Any = None, type_name: str = "") -> StatementBuilder:
        """Append a value: keywords inline, everything else as a placeholder."""

        if isinstance(value, SqlKeyword):
            return self.sql(value.value)
        source = value if original is None else original
        param = self._adapter.adapt_param(value, source, type_name)
        self._params.append(param)
        self._fragments.append((self._adapter.placeholder(len(self._params), param), True))
        self._literal.append(render_literal(value))
        return self

    def join(self, items: Iterable[Any], separator: str, emit: Callable[[Any], object]) -> StatementBuilder:
        for index, item in enumerate(items):
            if index:
                self.sql(separator)
            emit(item)
        return self

    def build(self) -> SqlStatement:
        # aiomysql %-formats the text whenever parameters are given.
        escape_percent = self._dialect is Dialect.MYSQL and bool(self._params)
        text = "".join(
            fragment if is_placeholder or not escape_percent else fragment.replace("%", "%%")
            for fragment, is_placeholder in self._fragments
        )
        return SqlStatement(text=text, params=tuple(self._params), literal="".join(self._literal))


def _cast_to_text(builder: StatementBuilder, column: str) -> None:
    target = "CHAR" if builder.dialect is Dialect.MYSQL else "TEXT"
    builder.sql("CAST(").ident(column).sql(f" AS {target})")


def _append_filter(builder: StatementBuilder, query_filter: QueryFilter, schema: Sequence[TableSchemaColumn]) -> None:
    column = find_column(schema, query_filter.column)
    type_name = column.type if column else ""
    is_text = column is None or is_text_type(column.type)
    raw = query_filter.value
    number = None if looks_like_iso_date(raw) else parse_number(raw)
    operator = query_filter.operator

    if operator in _PATTERN_OPERATORS:
        if is_text:
            builder.ident(query_filter.column)
        else:
            _cast_to_text(builder, query_filter.column)
        like = "ILIKE" if builder.dialect is Dialect.POSTGRES else "LIKE"
        builder.sql(f" {like} ").value(_PATTERN_OPERATORS[operator].format(raw))
        return

    builder.ident(query_filter.column)
    if operator is FilterOperator.EQUALS:
        builder.sql(" = ")
        if number is not None and not is_text:
            builder.value(number, type_name=type_name)
        else:
            builder.value(raw, type_name=type_name)
        return

    builder.sql(f" {_COMPARISON_OPERATORS[operator]} ")
    # PostgreSQL has no implicit text-to-number comparison.
    if number is None or (is_text and builder.dialect is Dialect.POSTGRES):
        builder.value(raw, type_name=type_name)
    else:
        builder.value(number, type_name=type_name)


def build_select(
    adapter: DialectAdapter,
    table: str,
    schema: Sequence[TableSchemaColumn],
    *,
    limit: int,
    offset: int = 0,
    filters: Sequence[QueryFilter] = (),
    order_by: str | None = None,
    direction: SortDirection | str | None = None,
) -> SqlStatement:
    """Filtered, sorted, paginated ``SELECT *``.

    Without an explicit ``order_by`` the rows are ordered by ``id`` when the
    table has one, else by its first column, so offset paging stays stable.
    """

    builder = StatementBuilder(adapter)
    builder.sql("SELECT * FROM ").ident(table)

    active = [item for item in filters if item.value]
    if active:
        builder.sql(" WHERE ")
        builder.join(active, " AND ", lambda item: _append_filter(builder, item, schema))

    if order_by:
        descending = direction is not None and SortDirection(direction) is SortDirection.DESC
        builder.sql(" ORDER BY ").ident(order_by).sql(" DESC" if descending else " ASC")
    elif find_column(schema, "id") is not None:
        builder.sql(" ORDER BY ").ident("id").sql(" ASC")
    elif schema:
        builder.sql(" ORDER BY ").ident(schema[0].name).sql(" ASC")

    builder.sql(f" LIMIT {int(limit)} OFFSET {int(offset)}")
    return builder.build()


def build_insert(
    adapter: DialectAdapter,
    table: str,
    schema: Sequence[TableSchemaColumn],
    values: Mapping[str, str],
) -> SqlStatement:
    """``INSERT`` from edited strings; empty generated keys are left to the database."""

    entries: list[tuple[str, TableSchemaColumn | None, str]] = []
    for name, raw in values.items():
        column = find_column(schema, name)
        if column is not None and column.auto_increment and raw == "":
            continue
        entries.append((name, column, raw))

    builder = StatementBuilder(adapter)
    builder.sql("INSERT INTO ").ident(table)
    if not entries:
        builder.sql(" () VALUES ()" if builder.dialect is Dialect.MYSQL else " DEFAULT VALUES")
        return builder.build()

    builder.sql(" (")
    builder.join(entries, ", ", lambda entry: builder.ident(entry[0]))
    builder.sql(") VALUES (")
    builder.join(
        entries,
        ", ",
        lambda entry: builder.value(
            coerce_input(entry[2], entry[1]),
            original=entry[2],
            type_name=entry[1].type if entry[1] else "",
        ),
    )
    builder.sql(")")
    return builder.build()


def identity_columns(schema: Sequence[TableSchemaColumn], row: Mapping[str, Any]) -> list[str]:
    """Columns used to find a snapshot row again: the primary key, else every snapshot column."""

    keys = [column.name for column in schema if column.primary_key]
    return keys if keys else list(row.keys())


def _append_row_match(
    builder: StatementBuilder,
    schema: Sequence[TableSchemaColumn],
    row: Mapping[str, Any],
) -> None:
    names = identity_columns(schema, row)
    if not names:
        raise ValueError("Cannot identify the row: the table has no primary key and the row is empty")

    def _term(name: str) -> None:
        column = find_column(schema, name)
        original = row.get(name)
        coerced = coerce_snapshot(original, column)
        builder.ident(name)
        if coerced is SqlKeyword.NULL:
            builder.sql(" IS NULL")
            return
        builder.sql(" = ").value(coerced, original=original, type_name=column.type if column else "")

    builder.sql(" WHERE ")
    builder.join(names, " AND ", _term)


def build_update(
    adapter: DialectAdapter,
    table: str,
    schema: Sequence[TableSchemaColumn],
    values: Mapping[str, str],
    original_row: Mapping[str, Any],
) -> SqlStatement:
    """``UPDATE`` one row located by its original snapshot; generated columns are skipped."""

    assignments: list[tuple[str, TableSchemaColumn | None, str]] = []
    for name, raw in values.items():
        column = find_column(schema, name)
        if column is not None and column.auto_increment:
            continue
        assignments.append((name, column, raw))
    if not assignments:
        raise ValueError("No columns to update")

    builder = StatementBuilder(adapter)
    builder.sql("UPDATE ").ident(table).sql(" SET ")

    def _assign(entry: tuple[str, TableSchemaColumn | None, str]) -> None:
        name, column, raw = entry
        builder.ident(name).sql(" = ")
        builder.value(coerce_input(raw, column), original=raw, type_name=column.type if column else "")

    builder.join(assignments, ", ", _assign)
    _append_row_match(builder, schema, original_row)
    return builder.build()


def build_delete(
    adapter: DialectAdapter,
    table: str,
    schema: Sequence[TableSchemaColumn],
    row: Mapping[str, Any],
) -> SqlStatement:
    builder = StatementBuilder(adapter)
    builder.sql("DELETE FROM ").ident(table)
    _append_row_match(builder, schema, row)
    return builder.build()


def build_foreign_key_lookup(
    adapter: DialectAdapter,
    reference: ForeignKeyRef,
    column: TableSchemaColumn | None,
    value: str,
    limit: int,
) -> SqlStatement:
    """Rows of the referenced table matching ``value``; fetches one extra row to detect more."""

    raw = value.strip()
    type_name = column.type if column else ""
    category = classify(type_name)
    comparison: Any = raw
    if category is TypeCategory.BOOLEAN and raw in ("true", "false"):
        comparison = SqlKeyword.TRUE if raw == "true" else SqlKeyword.FALSE
    elif category is TypeCategory.NUMERIC:
        number = parse_number(raw)
        if number is not None:
            comparison = number

    builder = StatementBuilder(adapter)
    builder.sql("SELECT * FROM ").ident(reference.table)
    builder.sql(" WHERE ").ident(reference.column).sql(" = ")
    builder.value(comparison, original=raw, type_name=type_name)
    builder.sql(f" LIMIT {int(limit) + 1}")
    return builder.build()


__all__ = [
    "StatementBuilder",
    "build_delete",
    "build_foreign_key_lookup",
    "build_insert",
    "build_select",
    "build_update",
    "identity_columns",
]
