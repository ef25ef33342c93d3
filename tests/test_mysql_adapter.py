"""Tests for the pymysql adapter with the driver faked out."""

from __future__ import annotations

from typing import Any

import pymysql
import pymysql.cursors
import pytest
from pymysql.constants import CLIENT

from mysql_control_bridge.database.adapters import create_adapter
from mysql_control_bridge.database.adapters import mysql as mysql_module
from mysql_control_bridge.database.adapters.mysql import MySQLAdapter
from mysql_control_bridge.database.errors import DatabaseConnectionError, DatabaseExecutionError
from mysql_control_bridge.database.hosts import HostConfig


class _FakeCursor:
    def __init__(self, connection: "_FakeConnection") -> None:
        self.connection = connection

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        if self.connection.fail_with is not None:
            raise self.connection.fail_with
        self.connection.executed.append((sql, params))

    def fetchall(self) -> tuple[dict[str, Any], ...]:
        return tuple(self.connection.rows)


class _FakeConnection:
    def __init__(self) -> None:
        self.executed: list[tuple[str, Any]] = []
        self.rows: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.ping_error: Exception | None = None
        self.closed = False

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    def ping(self, reconnect: bool = True) -> None:
        assert reconnect is False
        if self.ping_error is not None:
            raise self.ping_error

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def driver(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    state: dict[str, Any] = {"connection": _FakeConnection(), "kwargs": None}

    def _connect(**kwargs: Any) -> _FakeConnection:
        state["kwargs"] = kwargs
        return state["connection"]

    monkeypatch.setattr(mysql_module.pymysql, "connect", _connect)
    return state


def _adapter() -> MySQLAdapter:
    return MySQLAdapter("prod", "127.0.0.1", 41000, "reader", None, "shop", via_tunnel=True)


def test_connect_disables_multi_statements_and_sets_read_only(driver: dict[str, Any]) -> None:
    adapter = _adapter()

    adapter.connect()

    kwargs = driver["kwargs"]
    assert kwargs["client_flag"] & CLIENT.MULTI_STATEMENTS == 0
    assert kwargs["cursorclass"] is pymysql.cursors.DictCursor
    assert (kwargs["host"], kwargs["port"], kwargs["password"]) == ("127.0.0.1", 41000, "")
    assert driver["connection"].executed == [("SET SESSION TRANSACTION READ ONLY", None)]


def test_connect_failure_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(**kwargs: Any) -> None:
        raise pymysql.err.OperationalError(2003, "Can't connect")

    monkeypatch.setattr(mysql_module.pymysql, "connect", _refuse)
    adapter = _adapter()

    with pytest.raises(DatabaseConnectionError) as excinfo:
        adapter.connect()

    assert excinfo.value.host == "prod"
    assert adapter.connection is None


def test_execute_returns_rows_and_binds_params(driver: dict[str, Any]) -> None:
    adapter = _adapter()
    adapter.connect()
    driver["connection"].rows = [{"Name": "orders"}]

    rows = adapter.execute("SELECT 1 WHERE x = %s", ("shop",))

    assert rows == [{"Name": "orders"}]
    assert driver["connection"].executed[-1] == ("SELECT 1 WHERE x = %s", ("shop",))


def test_execute_error_is_wrapped(driver: dict[str, Any]) -> None:
    adapter = _adapter()
    adapter.connect()
    driver["connection"].fail_with = pymysql.err.ProgrammingError(1064, "syntax")

    with pytest.raises(DatabaseExecutionError):
        adapter.execute("SELECT nonsense")


def test_execute_without_connection_raises() -> None:
    with pytest.raises(DatabaseConnectionError):
        _adapter().execute("SELECT 1")


def test_ping_reports_broken_connection(driver: dict[str, Any]) -> None:
    adapter = _adapter()
    assert adapter.ping() is False

    adapter.connect()
    assert adapter.ping() is True

    driver["connection"].ping_error = pymysql.err.OperationalError(2006, "gone away")
    assert adapter.ping() is False


def test_close_drops_connection(driver: dict[str, Any]) -> None:
    adapter = _adapter()
    adapter.connect()

    adapter.close()

    assert driver["connection"].closed is True
    assert adapter.connection is None


def test_create_adapter_uses_host_credentials() -> None:
    config = HostConfig(name="prod", host="db", user="reader", password="pw", database="shop")

    adapter = create_adapter(config, "127.0.0.1", 41000, via_tunnel=True)

    assert isinstance(adapter, MySQLAdapter)
    assert (adapter.user, adapter.password, adapter.database) == ("reader", "pw", "shop")
    assert adapter.target == "127.0.0.1:41000/shop"
