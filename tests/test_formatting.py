"""Tests for result and error rendering."""

from __future__ import annotations

from mysql_control_bridge.database.errors import NotASelectError, UnknownHostError
from mysql_control_bridge.database.formatting import format_error, format_operation_result, format_rows
from mysql_control_bridge.models import OperationResult, ResultSection


def test_format_rows_aligns_columns_and_renders_null() -> None:
    lines = format_rows([{"id": 1, "name": None}, {"id": 22, "name": b"bob"}])

    assert lines[0] == "Row#  id  name"
    assert lines[2] == "   1  1   NULL"
    assert lines[3] == "   2  22  bob"


def test_format_rows_empty() -> None:
    assert format_rows([]) == ["(no rows)"]


def test_format_operation_result_includes_host_sql_and_total() -> None:
    result = OperationResult(
        operation="execute_select_query",
        host="prod",
        database="shop",
        sections=[ResultSection("Results (1 rows)", [{"id": 7}], sql="select id from t LIMIT 100")],
    )

    text = format_operation_result(result)

    assert "EXECUTE SELECT QUERY" in text
    assert "Host: prod" in text
    assert "Database: shop" in text
    assert "select id from t LIMIT 100" in text
    assert "Total rows: 1" in text


def test_format_operation_result_with_message() -> None:
    result = OperationResult(operation="show_tables", host="a", database="d", message="No tables found in database 'd'")

    text = format_operation_result(result)

    assert "Result: No tables found in database 'd'" in text
    assert "Total rows" not in text


def test_format_error_carries_kind_and_host() -> None:
    text = format_error(UnknownHostError("zzz", ["a", "b"]))

    assert text.startswith("Error: [UnknownHost]")
    assert "Available hosts: a, b" in text


def test_format_error_without_host() -> None:
    assert format_error(NotASelectError()).startswith(f"Error: [{NotASelectError().kind}] ")
