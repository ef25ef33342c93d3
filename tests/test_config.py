"""Tests for .env discovery and interpolation."""

from __future__ import annotations

from pathlib import Path

from mysql_control_bridge.config import (
    env_file_candidates,
    find_project_root,
    interpolate_value,
    load_env_files,
    load_environment,
    resolve_env_variables,
)


def _project(tmp_path: Path) -> Path:
    (tmp_path / ".cursor").mkdir()
    (tmp_path / "src" / "pkg").mkdir(parents=True)
    return tmp_path


def test_find_project_root_walks_up_to_cursor_dir(tmp_path: Path) -> None:
    root = _project(tmp_path)

    found, has_cursor = find_project_root(root / "src" / "pkg")

    assert has_cursor is True
    assert found == root.resolve()


def test_find_project_root_falls_back_to_start(tmp_path: Path) -> None:
    start = tmp_path / "plain"
    start.mkdir()

    found, has_cursor = find_project_root(start)

    assert found == start.resolve()
    assert has_cursor is False


def test_candidates_put_cursor_env_last(tmp_path: Path) -> None:
    root = _project(tmp_path).resolve()

    assert env_file_candidates(root / "src") == [root / ".env", root / ".cursor" / ".env"]


def test_cursor_env_overrides_root_env(tmp_path: Path) -> None:
    root = _project(tmp_path)
    (root / ".env").write_text("MYSQL_USER=root_user\nMYSQL_DATABASE=app\n")
    (root / ".cursor" / ".env").write_text("MYSQL_USER=cursor_user\n")

    environ = load_env_files(base={}, start=root / "src")

    assert environ["MYSQL_USER"] == "cursor_user"
    assert environ["MYSQL_DATABASE"] == "app"


def test_process_environment_wins_over_files(tmp_path: Path) -> None:
    root = _project(tmp_path)
    (root / ".cursor" / ".env").write_text("MYSQL_USER=from_file\n")

    environ = load_env_files(base={"MYSQL_USER": "from_client"}, start=root)

    assert environ["MYSQL_USER"] == "from_client"


def test_extra_files_only_fill_unset_keys(tmp_path: Path) -> None:
    extra = tmp_path / "extra.env"
    extra.write_text("MYSQL_USER=extra\nMYSQL_HOST=extra-host\n")

    environ = load_env_files(base={"MYSQL_USER": "kept"}, start=tmp_path, extra_files=(extra,))

    assert environ["MYSQL_USER"] == "kept"
    assert environ["MYSQL_HOST"] == "extra-host"


def test_missing_extra_file_is_skipped(tmp_path: Path) -> None:
    environ = load_env_files(base={"A": "1"}, start=tmp_path, extra_files=(tmp_path / "nope.env",))

    assert environ == {"A": "1"}


def test_interpolate_value_uses_variable_then_default() -> None:
    environ = {"HOST": "db.local", "EMPTY": ""}

    assert interpolate_value("${HOST}:3306", environ) == "db.local:3306"
    assert interpolate_value("${MISSING:-fallback}", environ) == "fallback"
    assert interpolate_value("${EMPTY:-fallback}", environ) == "fallback"
    assert interpolate_value("[${MISSING}]", environ) == "[]"


def test_resolve_follows_chained_references() -> None:
    environ = {"A": "${B}", "B": "${C}", "C": "value"}

    assert resolve_env_variables(environ) == {"A": "value", "B": "value", "C": "value"}


def test_resolve_stops_on_cycles() -> None:
    resolved = resolve_env_variables({"A": "x${B}", "B": "y${A}"})

    assert set(resolved) == {"A", "B"}


def test_load_environment_interpolates_file_values(tmp_path: Path) -> None:
    root = _project(tmp_path)
    (root / ".env").write_text("BASE_USER=reader\nMYSQL_USER=${BASE_USER}\nMYSQL_PORT=${PORT:-3307}\n")

    environ = load_environment(base={}, start=root)

    assert environ["MYSQL_USER"] == "reader"
    assert environ["MYSQL_PORT"] == "3307"
