"""Query sanitizing and read-only enforcement.

Classification is lexical: comments are stripped and the leading keyword is
inspected. This is not a SQL parser.
"""

import re
from typing import Any, Optional

from ..constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from .errors import (
    EmptyQueryError,
    ForbiddenCommandError,
    InvalidArgumentError,
    NotASelectError,
)

LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
WHITESPACE = re.compile(r"\s+")
SELECT_PREFIX = re.compile(r"^select", re.IGNORECASE)
LIMIT_WORD = re.compile(r"\blimit\b", re.IGNORECASE)
LEADING_WORD = re.compile(r"^\w+")

EXPLAIN_ALLOWED = frozenset({"SELECT", "WITH"})

# Statements that change data, schema, privileges or session state
MUTATING_KEYWORDS = frozenset({
    "INSERT", "UPDATE", "DELETE", "CREATE", "ALTER", "DROP",
    "GRANT", "REVOKE", "TRUNCATE", "REPLACE", "MERGE",
    "SET", "CALL", "EXECUTE", "DECLARE", "LOCK", "UNLOCK",
})


def strip_comments(query: str) -> str:
    """Remove ``--`` line comments and ``/* */`` block comments, then collapse whitespace."""
    query = LINE_COMMENT.sub("", query)
    query = BLOCK_COMMENT.sub("", query)
    return WHITESPACE.sub(" ", query.strip()).strip()


def normalize_limit(limit: Optional[Any]) -> int:
    """Turn a caller-supplied limit into the row bound to append.

    Args:
        limit: Requested limit; ``None`` or ``0`` selects the default

    Returns:
        Limit between 1 and MAX_QUERY_LIMIT

    Raises:
        InvalidArgumentError: If limit is not an integer
    """
    if limit is None or isinstance(limit, bool):
        return DEFAULT_QUERY_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"limit must be an integer, got {limit!r}") from None
    if value == 0:
        return DEFAULT_QUERY_LIMIT
    return max(1, min(value, MAX_QUERY_LIMIT))


def prepare_select(query: str, limit: Optional[Any] = None) -> str:
    """Produce the executable form of a caller-supplied SELECT.

    Comments are removed before any keyword check so they cannot hide a
    clause or defeat the SELECT test. A LIMIT is appended only when the query
    has none; the caller's own LIMIT is kept as written.

    Args:
        query: Raw SQL text from the caller
        limit: Requested row bound (see normalize_limit)

    Returns:
        Final SQL string, with the original trailing ``;`` restored

    Raises:
        NotASelectError: If the normalized query does not start with SELECT
    """
    text = (query or "").strip()
    has_terminator = text.endswith(";")
    if has_terminator:
        text = text[:-1].strip()

    text = strip_comments(text)

    if not SELECT_PREFIX.match(text):
        raise NotASelectError()

    if not LIMIT_WORD.search(text):
        text = f"{text} LIMIT {normalize_limit(limit)}"

    if has_terminator:
        text += ";"
    return text


def prepare_explain(query: str) -> str:
    """Check that a query may be wrapped in EXPLAIN.

    The comment-stripped text is used only to classify the statement; the
    returned SQL is the caller's original text, trimmed.

    Args:
        query: Raw SQL text from the caller

    Returns:
        The trimmed original query

    Raises:
        EmptyQueryError: If the query is blank
        ForbiddenCommandError: If the leading keyword is not SELECT or WITH
    """
    original = (query or "").strip()
    if not original:
        raise EmptyQueryError()

    normalized = strip_comments(original)
    if not normalized:
        raise EmptyQueryError()

    token = normalized.split(" ", 1)[0]
    match = LEADING_WORD.match(token)
    keyword = (match.group(0) if match else token).upper()

    if keyword in EXPLAIN_ALLOWED:
        return original

    raise ForbiddenCommandError(keyword, mutating=keyword in MUTATING_KEYWORDS)
