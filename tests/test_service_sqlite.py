"""End-to-end tests for DatabaseService against real SQLite files."""

from __future__ import annotations

from pathlib import Path

import pytest

from dbrowse.config import AppConfig, ConnectionStore, SQLiteConnectionConfig
from dbrowse.errors import ConnectionNotFoundError, NotConnectedError, QueryExecutionError
from dbrowse.models import ColumnDraft, FilterOperator, ForeignKeyRef, QueryFilter
from dbrowse.service import DatabaseService

USERS_COLUMNS = [
    ColumnDraft(name="id", type="INTEGER", auto_increment=True),
    ColumnDraft(name="name", type="TEXT", nullable=False),
    ColumnDraft(name="age", type="INTEGER"),
]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def service(tmp_path: Path) -> DatabaseService:
    config = AppConfig(
        page_size=2,
        connections=[SQLiteConnectionConfig(id="local", name="Local", file_path=str(tmp_path / "app.db"))],
    )
    return DatabaseService.from_config(config)


@pytest.mark.anyio
async def test_users_scenario(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.create_table("local", "users", USERS_COLUMNS)
        assert await service.list_tables("local") == ["users"]

        assert await service.insert_row("local", "users", {"name": "Ann", "age": "30"})
        page = await service.get_table_data(
            "local", "users", filters=[{"column": "name", "operator": "contains", "value": "an"}]
        )
        assert page.rows == ({"id": 1, "name": "Ann", "age": 30},)

        snapshot = page.rows[0]
        assert await service.update_row("local", "users", {"age": "31"}, snapshot)
        page = await service.get_table_data("local", "users")
        assert page.rows[0]["age"] == 31

        result = await service.delete_rows("local", "users", [page.rows[0]])
        assert result.success and result.deleted_count == 1
        assert (await service.get_table_data("local", "users")).rows == ()
    finally:
        await service.disconnect_all()


@pytest.mark.anyio
async def test_schema_flags(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.create_table("local", "users", USERS_COLUMNS)
        columns = await service.get_table_schema("local", "users")
    finally:
        await service.disconnect_all()

    assert [column.primary_key for column in columns] == [True, False, False]
    assert columns[0].auto_increment
    assert not columns[1].nullable
    assert columns[2].nullable


@pytest.mark.anyio
async def test_empty_value_sets_null_and_reads_back_none(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.create_table("local", "users", USERS_COLUMNS)
        await service.insert_row("local", "users", {"name": "Bo", "age": "40"})
        row = (await service.get_table_data("local", "users")).rows[0]

        await service.update_row("local", "users", {"age": ""}, row)

        refreshed = (await service.get_table_data("local", "users")).rows[0]
        assert refreshed["age"] is None
    finally:
        await service.disconnect_all()


@pytest.mark.anyio
async def test_paging_filters_and_sorting(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.create_table("local", "users", USERS_COLUMNS)
        for name, age in (("Ann", "30"), ("Ben", "17"), ("Cy", "45")):
            await service.insert_row("local", "users", {"name": name, "age": age})

        first_page = await service.get_table_data("local", "users")
        second_page = await service.get_table_data("local", "users", offset=2)
        adults = await service.get_table_data(
            "local",
            "users",
            filters=[QueryFilter(column="age", value="18", operator=FilterOperator.GTE)],
            order_by="age",
            direction="desc",
        )
    finally:
        await service.disconnect_all()

    assert [row["name"] for row in first_page.rows] == ["Ann", "Ben"]
    assert [row["name"] for row in second_page.rows] == ["Cy"]
    assert [row["name"] for row in adults.rows] == ["Cy", "Ann"]


@pytest.mark.anyio
async def test_foreign_key_rows(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.execute_query("local", "CREATE TABLE teams (id INTEGER PRIMARY KEY, label TEXT)")
        await service.execute_query(
            "local", "CREATE TABLE people (id INTEGER PRIMARY KEY, team INTEGER REFERENCES teams(id))"
        )
        await service.execute_query("local", "INSERT INTO teams (id, label) VALUES (1, 'red')")
        await service.execute_query("local", "INSERT INTO people (team) VALUES (1), (1), (1)")

        schema = await service.get_table_schema("local", "people")
        reference = schema[1].foreign_key
        team = await service.get_foreign_key_rows("local", reference, "1")
        members = await service.get_foreign_key_rows("local", {"table": "people", "column": "team"}, "1", limit=2)
        empty = await service.get_foreign_key_rows("local", ForeignKeyRef("teams", "id"), "  ")
    finally:
        await service.disconnect_all()

    assert reference == ForeignKeyRef("teams", "id")
    assert team.rows == ({"id": 1, "label": "red"},) and not team.has_more
    assert len(members.rows) == 2 and members.has_more
    assert empty.rows == () and not empty.has_more


@pytest.mark.anyio
async def test_table_management(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        await service.create_table("local", "drafts", [ColumnDraft(name="body", type="TEXT")])
        await service.rename_table("local", "drafts", "notes")
        assert await service.list_tables("local") == ["notes"]
        assert service.resolve_query_table("local", "UPDATE notes SET body = 'x'") == "notes"

        await service.drop_table("local", "notes", cascade=True)
        assert await service.list_tables("local") == []
    finally:
        await service.disconnect_all()


@pytest.mark.anyio
async def test_raw_query_results_and_errors(service: DatabaseService) -> None:
    await service.connect("local")
    try:
        result = await service.execute_query("local", "SELECT 1 AS one, 'a' AS letter")
        assert result.columns == ("one", "letter")
        assert result.rows == ({"one": 1, "letter": "a"},)

        ddl = await service.execute_query("local", "CREATE TABLE t (x INTEGER)")
        assert ddl.columns == () and ddl.rows == ()

        with pytest.raises(QueryExecutionError, match="Query execution failed"):
            await service.execute_query("local", "SELEC nonsense")
    finally:
        await service.disconnect_all()


@pytest.mark.anyio
async def test_lifecycle_errors(service: DatabaseService) -> None:
    with pytest.raises(ConnectionNotFoundError):
        await service.connect("missing")
    with pytest.raises(NotConnectedError):
        await service.list_tables("local")
    with pytest.raises(ValueError):
        await service.get_table_data("local", "users", limit=0)

    await service.connect("local")
    await service.connect("local")
    assert service.is_connected("local")
    await service.disconnect("local")
    await service.disconnect("local")
    assert not service.is_connected("local")
