"""Tests for the command line driver."""

from __future__ import annotations

import argparse
import sqlite3
from pathlib import Path

import pytest

from dbrowse.cli import _parse_filter, main
from dbrowse.config import AppConfig, SQLiteConnectionConfig, save_config
from dbrowse.models import FilterOperator


def _write_config(tmp_path: Path) -> Path:
    db_path = tmp_path / "app.db"
    with sqlite3.connect(db_path) as conn:
        conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, age INTEGER)")
        conn.executemany("INSERT INTO users (name, age) VALUES (?, ?)", [("Ann", 30), ("Ben", None)])
    conn.close()
    config_path = tmp_path / "config.toml"
    save_config(
        AppConfig(connections=[SQLiteConnectionConfig(id="local", name="Local", file_path=str(db_path))]),
        config_path,
    )
    return config_path


def test_parse_filter_keeps_colons_in_value() -> None:
    parsed = _parse_filter("created:startsWith:2024-01-01 10:")

    assert parsed.column == "created"
    assert parsed.operator is FilterOperator.STARTS_WITH
    assert parsed.value == "2024-01-01 10:"


def test_parse_filter_rejects_unknown_operator() -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_filter("age:between:1")


def test_connections_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)

    assert main(["--config", str(config_path), "connections"]) == 0

    assert capsys.readouterr().out.strip() == "local\tsqlite\tLocal"


def test_rows_command_prints_page(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)

    code = main(["--config", str(config_path), "rows", "local", "users", "--order-by", "name", "--desc"])

    lines = capsys.readouterr().out.splitlines()
    assert code == 0
    assert lines[0] == "id\tname\tage"
    assert lines[1] == "2\tBen\tNULL"
    assert lines[2] == "1\tAnn\t30"


def test_unknown_connection_reports_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)

    assert main(["--config", str(config_path), "tables", "nope"]) == 1

    assert "Connection not found: nope" in capsys.readouterr().err
