"""Tests for query sanitizing."""

from __future__ import annotations

import pytest

from mysql_control_bridge.database.errors import (
    EmptyQueryError,
    ForbiddenCommandError,
    InvalidArgumentError,
    NotASelectError,
)
from mysql_control_bridge.database.validation import (
    normalize_limit,
    prepare_explain,
    prepare_select,
    strip_comments,
)


def test_prepare_select_appends_limit() -> None:
    assert prepare_select("select * from t", 100) == "select * from t LIMIT 100"


def test_prepare_select_keeps_existing_limit_and_terminator() -> None:
    assert prepare_select("select * from t limit 5;", 100) == "select * from t limit 5;"


def test_prepare_select_reappends_terminator_after_limit() -> None:
    assert prepare_select("  SELECT id FROM t ;  ", 10) == "SELECT id FROM t LIMIT 10;"


def test_prepare_select_rejects_non_select() -> None:
    with pytest.raises(NotASelectError):
        prepare_select("update t set x=1", 100)


def test_prepare_select_drops_commented_limit() -> None:
    assert prepare_select("select * from t -- LIMIT 9999", 50) == "select * from t LIMIT 50"


def test_prepare_select_comment_cannot_hide_statement() -> None:
    with pytest.raises(NotASelectError):
        prepare_select("/* select */ delete from t", 10)


def test_prepare_select_strips_block_comments_and_whitespace() -> None:
    query = "select a,\n   b /* inline\ncomment */\n from t"

    assert prepare_select(query, 20) == "select a, b from t LIMIT 20"


def test_prepare_select_limit_detection_is_whole_word() -> None:
    result = prepare_select("select unlimited, limitations from t", 7)

    assert result == "select unlimited, limitations from t LIMIT 7"


def test_prepare_select_clamps_and_defaults_limit() -> None:
    assert prepare_select("select 1", 5000).endswith("LIMIT 1000")
    assert prepare_select("select 1", None).endswith("LIMIT 100")
    assert prepare_select("select 1").endswith("LIMIT 100")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 100), (0, 100), (1, 1), (250, 250), (1000, 1000), (1001, 1000), (-3, 1), ("40", 40)],
)
def test_normalize_limit(raw: object, expected: int) -> None:
    assert normalize_limit(raw) == expected


def test_normalize_limit_rejects_garbage() -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_limit("many")


def test_strip_comments_collapses_whitespace() -> None:
    assert strip_comments("  select\t1 -- tail\n  from   dual  ") == "select 1 from dual"


def test_prepare_explain_rejects_mutating_keyword() -> None:
    with pytest.raises(ForbiddenCommandError) as excinfo:
        prepare_explain("DROP TABLE t")

    assert excinfo.value.keyword == "DROP"
    assert excinfo.value.mutating is True
    assert "only SELECT/WITH permitted, got DROP" in str(excinfo.value)


def test_prepare_explain_rejects_unknown_keyword() -> None:
    with pytest.raises(ForbiddenCommandError) as excinfo:
        prepare_explain("show tables")

    assert excinfo.value.keyword == "SHOW"
    assert excinfo.value.mutating is False
    assert "command not permitted for EXPLAIN" in str(excinfo.value)


def test_prepare_explain_accepts_cte_unchanged() -> None:
    query = "WITH x AS (SELECT 1) SELECT * FROM x"

    assert prepare_explain(query) == query


def test_prepare_explain_returns_original_text_not_stripped_form() -> None:
    query = "  /* plan */ Select *\n  FROM t -- note\n"

    assert prepare_explain(query) == "/* plan */ Select *\n  FROM t -- note"


def test_prepare_explain_comment_cannot_hide_keyword() -> None:
    with pytest.raises(ForbiddenCommandError) as excinfo:
        prepare_explain("/* select */ update t set a = 1")

    assert excinfo.value.keyword == "UPDATE"


@pytest.mark.parametrize("query", ["", "   ", "-- only a comment", "/* nothing */"])
def test_prepare_explain_rejects_empty(query: str) -> None:
    with pytest.raises(EmptyQueryError):
        prepare_explain(query)
