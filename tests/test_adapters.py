from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from adapters.db import mysql_adapter
from adapters.db.factory import connect, open_adapter
import pymysql

from adapters.db.mssql_adapter import MSSQLAdapter, _is_unknown_database, sql_type_for
from adapters.db.mysql_adapter import MySQLAdapter
from querytool.errors import (
    DatabaseNotFoundError,
    DataSourceConnectionError,
    QueryError,
)
from querytool.types import ConnectionProfile, Dialect


class FakeCursor:
    def __init__(self, conn) -> None:
        self.conn = conn
        self.description = None
        self.closed = False

    def execute(self, *args):
        self.conn.calls.append(args)
        if self.conn.fail_with is not None:
            raise self.conn.fail_with
        self.description = [(name, None) for name in self.conn.columns]

    def fetchall(self):
        return self.conn.rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, rows=None, columns=(), fail_with=None) -> None:
        self.rows = rows or []
        self.columns = list(columns)
        self.fail_with = fail_with
        self.calls = []
        self.cursors = []
        self.close_count = 0

    def cursor(self):
        c = FakeCursor(self)
        self.cursors.append(c)
        return c

    def close(self):
        self.close_count += 1


def test_mysql_adapter_rewrites_to_format_placeholders():
    conn = FakeConnection(rows=[{"id": 1}], columns=["id"])
    db = MySQLAdapter(conn)
    rows, cols = db.execute(
        "SELECT `t`.`id` FROM `t` WHERE `t`.`name` LIKE ? LIMIT ? OFFSET ?",
        ["%jo%", 10, 20],
    )
    assert conn.calls == [
        (
            "SELECT `t`.`id` FROM `t` WHERE `t`.`name` LIKE %s LIMIT %s OFFSET %s",
            ("%jo%", 10, 20),
        )
    ]
    assert rows == [{"id": 1}]
    assert cols == ["id"]
    assert conn.cursors[0].closed


def test_mssql_adapter_binds_through_sp_executesql():
    conn = FakeConnection(rows=[("a", 5)], columns=["name", "age"])
    db = MSSQLAdapter(conn)
    rows, _ = db.execute(
        "SELECT [t].[name], [t].[age] FROM [t] WHERE [t].[name] = ? AND [t].[age] > ?",
        ["a", 4],
    )
    assert conn.calls == [
        (
            "EXEC sp_executesql ?, ?, @p1 = ?, @p2 = ?",
            "SELECT [t].[name], [t].[age] FROM [t] WHERE [t].[name] = @p1 AND [t].[age] > @p2",
            "@p1 nvarchar(max), @p2 bigint",
            "a",
            4,
        )
    ]
    assert rows == [{"name": "a", "age": 5}]


def test_mssql_adapter_without_params_executes_directly():
    conn = FakeConnection(rows=[(1,)], columns=["one"])
    MSSQLAdapter(conn).ping()
    assert conn.calls == [("SELECT 1",)]


@pytest.mark.parametrize(
    "value, declared",
    [
        (True, "bit"),
        (7, "bigint"),
        (1.5, "float"),
        (Decimal("2.50"), "decimal(38, 10)"),
        (dt.datetime(2024, 1, 2, 3, 4), "datetime2"),
        (dt.date(2024, 1, 2), "date"),
        (b"\x00", "varbinary(max)"),
        ("text", "nvarchar(max)"),
        (None, "nvarchar(max)"),
    ],
)
def test_sql_type_for(value, declared):
    assert sql_type_for(value) == declared


def test_driver_errors_become_query_errors_and_cursor_closes():
    conn = FakeConnection(fail_with=RuntimeError("syntax error near FROM"))
    db = MySQLAdapter(conn)
    with pytest.raises(QueryError) as ei:
        db.execute("SELECT FROM")
    assert "syntax error" in ei.value.message
    assert ei.value.details == ["RuntimeError"]
    assert conn.cursors[0].closed


def test_close_is_idempotent_and_blocks_further_use():
    conn = FakeConnection()
    db = MySQLAdapter(conn)
    db.close()
    db.close()
    assert conn.close_count == 1
    assert db.closed
    with pytest.raises(QueryError):
        db.execute("SELECT 1")


def _profile(dialect: Dialect) -> ConnectionProfile:
    return ConnectionProfile(
        id=3,
        name="x",
        dialect=dialect,
        host="db.internal",
        port=3306,
        database_name="shop",
        username="u",
        password="p",
    )


def test_mysql_connect_failure_is_connection_error(monkeypatch):
    def boom(**kwargs):
        raise OSError("Connection refused")

    monkeypatch.setattr(mysql_adapter.pymysql, "connect", boom)
    with pytest.raises(DataSourceConnectionError) as ei:
        open_adapter(_profile(Dialect.MYSQL))
    assert ei.value.message.startswith("Database connection failed:")


def test_mysql_unknown_database_is_not_found(monkeypatch):
    def unknown_db(**kwargs):
        raise pymysql.err.OperationalError(1049, "Unknown database 'shop'")

    monkeypatch.setattr(mysql_adapter.pymysql, "connect", unknown_db)
    with pytest.raises(DatabaseNotFoundError) as ei:
        open_adapter(_profile(Dialect.MYSQL))
    assert ei.value.extra == {"dialect": "mysql", "database": "shop"}


def test_mysql_access_denied_stays_connection_error(monkeypatch):
    def denied(**kwargs):
        raise pymysql.err.OperationalError(1045, "Access denied for user 'u'")

    monkeypatch.setattr(mysql_adapter.pymysql, "connect", denied)
    with pytest.raises(DataSourceConnectionError):
        open_adapter(_profile(Dialect.MYSQL))


def test_mssql_detects_unknown_database_login_error():
    msg = (
        "[42000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]Cannot open "
        'database "shop" requested by the login. The login failed. (4060) (SQLDriverConnect)'
    )
    assert _is_unknown_database(Exception("42000", msg))
    assert not _is_unknown_database(Exception("28000", "Login failed for user 'u'. (18456)"))


def test_factory_connect_closes_scoped_adapter(monkeypatch):
    conn = FakeConnection()
    captured = {}

    def fake_connect(**kwargs):
        captured.update(kwargs)
        return conn

    monkeypatch.setattr(mysql_adapter.pymysql, "connect", fake_connect)
    with connect(_profile(Dialect.MYSQL)) as db:
        assert isinstance(db, MySQLAdapter)
    assert conn.close_count == 1
    assert captured["host"] == "db.internal"
    assert captured["database"] == "shop"
    assert captured["autocommit"] is True
