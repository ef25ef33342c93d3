"""Result formatting for AI consumption."""

from typing import Any

from ..models import OperationResult
from .errors import BridgeError

RESULT_SEPARATOR = "=" * 80
ROW_SEPARATOR = "-" * 80


def _cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def format_rows(rows: list[dict[str, Any]]) -> list[str]:
    """Format rows as a column-aligned table.

    Args:
        rows: Result rows (each row is a dictionary)

    Returns:
        Output lines: header, separator, numbered rows
    """
    if not rows:
        return ["(no rows)"]

    # Get column names from first row
    columns = list(rows[0].keys())

    # Calculate column widths for alignment
    col_widths = {col: len(str(col)) for col in columns}
    for row in rows:
        for col in columns:
            col_widths[col] = max(col_widths[col], len(_cell(row.get(col))))

    header_parts = ["Row#"]
    for col in columns:
        header_parts.append(str(col).ljust(col_widths[col]))
    output = ["  ".join(header_parts).rstrip(), ROW_SEPARATOR]

    for idx, row in enumerate(rows, start=1):
        row_parts = [f"{idx:4d}"]
        for col in columns:
            row_parts.append(_cell(row.get(col)).ljust(col_widths[col]))
        output.append("  ".join(row_parts).rstrip())

    return output


def format_operation_result(result: OperationResult) -> str:
    """Format a tool result as plain text.

    Formats results in a structured, readable format optimized for LLM
    analysis: a header naming the host and database, then each section with
    its SQL (if any) and an aligned table.

    Args:
        result: Dispatcher output

    Returns:
        Plain text with clear separators
    """
    output = [RESULT_SEPARATOR, result.operation.upper().replace("_", " "), RESULT_SEPARATOR]
    if result.host:
        output.append(f"Host: {result.host}")
    if result.database:
        output.append(f"Database: {result.database}")

    if result.message:
        output.extend([f"Result: {result.message}", RESULT_SEPARATOR, ""])
        return "\n".join(output)

    for section in result.sections:
        output.extend(["", ROW_SEPARATOR, section.title, ROW_SEPARATOR])
        if section.sql:
            output.append(section.sql)
            if section.rows:
                output.append(ROW_SEPARATOR)
        if section.rows or not section.sql:
            output.extend(format_rows(section.rows))

    output.extend([
        ROW_SEPARATOR,
        f"Total rows: {result.row_count}",
        RESULT_SEPARATOR,
        "",
    ])
    return "\n".join(output)


def format_error(error: BridgeError) -> str:
    """Render a structured error for the caller."""
    prefix = f"[{error.kind}]"
    if error.host and f"'{error.host}'" not in error.message:
        prefix += f" host '{error.host}':"
    return f"Error: {prefix} {error.message}"
