"""Tests for the generated browse and edit statements."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from dbrowse.dialects import MySQLAdapter, PostgresAdapter, SQLiteAdapter
from dbrowse.models import FilterOperator, ForeignKeyRef, QueryFilter, SortDirection, TableSchemaColumn
from dbrowse.query import (
    build_delete,
    build_foreign_key_lookup,
    build_insert,
    build_select,
    build_update,
    identity_columns,
)

USERS = [
    TableSchemaColumn(name="id", type="integer", nullable=False, auto_increment=True, primary_key=True),
    TableSchemaColumn(name="name", type="text", nullable=False),
    TableSchemaColumn(name="age", type="integer", nullable=True),
    TableSchemaColumn(name="nickname", type="character varying", nullable=True),
]

NO_KEY = [
    TableSchemaColumn(name="label", type="varchar(20)", nullable=True),
    TableSchemaColumn(name="qty", type="int", nullable=True),
]


def test_select_numeric_filter_binds_a_number() -> None:
    statement = build_select(
        PostgresAdapter(),
        "users",
        USERS,
        limit=100,
        filters=[QueryFilter(column="age", value="18", operator=FilterOperator.GTE)],
    )

    assert statement.text == 'SELECT * FROM "users" WHERE "age" >= $1 ORDER BY "id" ASC LIMIT 100 OFFSET 0'
    assert statement.params == (18,)
    assert '"age" >= 18' in statement.inline()


def test_select_contains_on_numeric_column_casts_to_text() -> None:
    filters = [QueryFilter(column="age", value="3", operator="contains")]

    pg = build_select(PostgresAdapter(), "users", USERS, limit=10, filters=filters)
    my = build_select(MySQLAdapter(), "users", USERS, limit=10, filters=filters)

    assert 'CAST("age" AS TEXT) ILIKE $1' in pg.text
    assert pg.params == ("%3%",)
    assert "CAST(`age` AS CHAR) LIKE %s" in my.text


def test_select_pattern_operators_and_joining() -> None:
    statement = build_select(
        SQLiteAdapter(),
        "users",
        USERS,
        limit=5,
        offset=10,
        filters=[
            QueryFilter(column="name", value="An", operator=FilterOperator.STARTS_WITH),
            QueryFilter(column="nickname", value="y", operator=FilterOperator.ENDS_WITH),
            QueryFilter(column="age", value="", operator=FilterOperator.EQUALS),
        ],
        order_by="name",
        direction=SortDirection.DESC,
    )

    assert statement.text == (
        'SELECT * FROM "users" WHERE "name" LIKE ? AND "nickname" LIKE ? '
        'ORDER BY "name" DESC LIMIT 5 OFFSET 10'
    )
    assert statement.params == ("An%", "%y")


def test_select_equals_keeps_date_like_values_as_strings() -> None:
    schema = [TableSchemaColumn(name="born", type="integer", nullable=True)]

    statement = build_select(
        SQLiteAdapter(),
        "people",
        schema,
        limit=1,
        filters=[QueryFilter(column="born", value="2024-01-01", operator=FilterOperator.EQUALS)],
    )

    assert statement.params == ("2024-01-01",)
    assert 'ORDER BY "born" ASC' in statement.text


def test_select_without_id_orders_by_first_column() -> None:
    statement = build_select(SQLiteAdapter(), "stock", NO_KEY, limit=1)

    assert 'ORDER BY "label" ASC' in statement.text


def test_mysql_escapes_percent_only_when_binding() -> None:
    schema = [TableSchemaColumn(name="pct%", type="varchar(5)", nullable=True)]

    bound = build_select(
        MySQLAdapter(), "t", schema, limit=1, filters=[QueryFilter(column="pct%", value="x", operator="equals")]
    )
    plain = build_select(MySQLAdapter(), "t", schema, limit=1)

    assert "`pct%%` = %s" in bound.text
    assert "`pct%`" in plain.text


def test_insert_skips_empty_generated_key() -> None:
    statement = build_insert(SQLiteAdapter(), "users", USERS, {"id": "", "name": "Ann", "age": "30"})

    assert statement.text == 'INSERT INTO "users" ("name", "age") VALUES (?, ?)'
    assert statement.params == ("Ann", 30)


def test_insert_writes_null_keyword_inline() -> None:
    statement = build_insert(PostgresAdapter(), "users", USERS, {"name": "Ann", "nickname": ""})

    assert statement.text == 'INSERT INTO "users" ("name", "nickname") VALUES ($1, NULL)'
    assert statement.params == ("Ann",)


def test_insert_with_only_defaults() -> None:
    assert build_insert(SQLiteAdapter(), "users", USERS, {"id": ""}).text == 'INSERT INTO "users" DEFAULT VALUES'
    assert build_insert(MySQLAdapter(), "users", USERS, {}).text == "INSERT INTO `users` () VALUES ()"


def test_update_identifies_row_by_primary_key_only() -> None:
    statement = build_update(
        PostgresAdapter(),
        "users",
        USERS,
        {"id": "5", "age": "31"},
        {"id": 5, "name": "Ann", "age": 30},
    )

    assert statement.text == 'UPDATE "users" SET "age" = $1 WHERE "id" = $2'
    assert statement.params == (31, 5)


def test_update_without_primary_key_matches_every_snapshot_column() -> None:
    statement = build_update(SQLiteAdapter(), "stock", NO_KEY, {"qty": "3"}, {"label": "bolt", "qty": None})

    assert statement.text == 'UPDATE "stock" SET "qty" = ? WHERE "label" = ? AND "qty" IS NULL'
    assert statement.params == (3, "bolt")
    assert identity_columns(NO_KEY, {"label": "bolt", "qty": None}) == ["label", "qty"]


def test_update_empty_nullable_value_sets_null() -> None:
    statement = build_update(SQLiteAdapter(), "users", USERS, {"nickname": ""}, {"id": 1})

    assert statement.text == 'UPDATE "users" SET "nickname" = NULL WHERE "id" = ?'
    assert statement.params == (1,)


def test_update_rejects_only_generated_columns() -> None:
    with pytest.raises(ValueError, match="No columns to update"):
        build_update(SQLiteAdapter(), "users", USERS, {"id": "9"}, {"id": 1})


def test_delete_requires_something_to_match_on() -> None:
    with pytest.raises(ValueError):
        build_delete(SQLiteAdapter(), "stock", NO_KEY, {})


def test_postgres_binds_native_temporal_values() -> None:
    schema = [
        TableSchemaColumn(name="id", type="integer", nullable=False, primary_key=True),
        TableSchemaColumn(name="born", type="date", nullable=True),
    ]

    statement = build_update(PostgresAdapter(), "people", schema, {"born": "2020-02-03"}, {"id": 1})

    assert statement.params == (date(2020, 2, 3), 1)
    assert "'2020-02-03'" in statement.inline()


def test_foreign_key_lookup_fetches_one_extra_row() -> None:
    column = TableSchemaColumn(name="id", type="integer", nullable=False, primary_key=True)

    statement = build_foreign_key_lookup(SQLiteAdapter(), ForeignKeyRef("users", "id"), column, " 7 ", 5)

    assert statement.text == 'SELECT * FROM "users" WHERE "id" = ? LIMIT 6'
    assert statement.params == (7,)


@pytest.mark.parametrize("adapter", [MySQLAdapter(), SQLiteAdapter()], ids=["mysql", "sqlite"])
def test_range_filter_on_text_column_compares_numbers(adapter: Any) -> None:
    schema = [TableSchemaColumn(name="code", type="varchar(10)", nullable=True)]

    statement = build_select(
        adapter, "t", schema, limit=1, filters=[QueryFilter(column="code", value="5", operator=FilterOperator.GT)]
    )

    assert statement.params == (5,)


def test_range_filter_on_postgres_text_column_keeps_the_string() -> None:
    schema = [TableSchemaColumn(name="code", type="text", nullable=True)]

    statement = build_select(
        PostgresAdapter(), "t", schema, limit=1, filters=[QueryFilter(column="code", value="5", operator="gt")]
    )

    assert statement.params == ("5",)
    assert '"code" > $1 ' in statement.text


def test_postgres_integral_float_on_integer_column_binds_an_int() -> None:
    statement = build_select(
        PostgresAdapter(), "users", USERS, limit=1, filters=[QueryFilter(column="age", value="1e3", operator="lt")]
    )

    assert statement.params == (1000,)
    assert type(statement.params[0]) is int
    assert '"age" < $1 ' in statement.text


def test_postgres_fractional_value_on_integer_column_binds_numeric() -> None:
    select = build_select(
        PostgresAdapter(), "users", USERS, limit=1, filters=[QueryFilter(column="age", value="17.5", operator="gt")]
    )
    update = build_update(PostgresAdapter(), "users", USERS, {"age": "30.5"}, {"id": 1})

    assert select.params == (Decimal("17.5"),)
    assert '"age" > $1::numeric' in select.text
    assert update.text == 'UPDATE "users" SET "age" = $1::numeric WHERE "id" = $2'
    assert update.params == (Decimal("30.5"), 1)
