"""Structured errors raised by the host registry, tunnels, pool and sanitizer.

Each error carries a ``kind`` naming its category plus the contextual fields
needed to render it (host name, missing fields, offending keyword). Turning an
error into user-facing text is done in ``formatting.format_error``.
"""

from typing import Optional, Sequence


class BridgeError(Exception):
    """Base class for every error surfaced to the tool caller."""

    kind = "BridgeError"

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.host = host


class UnknownHostError(BridgeError):
    """Raised when a host selector names no configured host."""

    kind = "UnknownHost"

    def __init__(self, host: str, available: Sequence[str]):
        self.available = list(available)
        listed = ", ".join(self.available) if self.available else "none"
        super().__init__(
            f"Unknown host '{host}'. Available hosts: {listed}",
            host=host,
        )


class AmbiguousHostError(BridgeError):
    """Raised when no selector is given and zero or several hosts exist."""

    kind = "AmbiguousOrMissingHost"

    def __init__(self, available: Sequence[str]):
        self.available = list(available)
        if self.available:
            message = (
                f"Several hosts are configured; pass 'host' to pick one of: "
                f"{', '.join(self.available)}"
            )
        else:
            message = (
                "No database hosts are configured. Set MYSQL_HOSTS, "
                "<NAME>_MYSQL_* variables, or MYSQL_USER/MYSQL_DATABASE"
            )
        super().__init__(message)


class MissingConfigError(BridgeError):
    """Raised when a host lacks fields required to connect."""

    kind = "MissingConfig"

    def __init__(self, host: str, fields: Sequence[str]):
        self.fields = list(fields)
        super().__init__(
            f"Host '{host}' is missing required configuration: {', '.join(self.fields)}",
            host=host,
        )


class KeyFileNotFoundError(BridgeError):
    """Raised when the configured SSH private key does not exist."""

    kind = "KeyFileNotFound"

    def __init__(self, host: str, path: str):
        self.path = path
        super().__init__(f"SSH private key not found for host '{host}': {path}", host=host)


class TunnelError(BridgeError):
    """Raised when an SSH tunnel cannot be opened."""

    kind = "TunnelError"

    def __init__(self, host: str, cause: object):
        self.cause = cause
        super().__init__(f"SSH tunnel for host '{host}' failed: {cause}", host=host)


class DatabaseConnectionError(BridgeError, ConnectionError):
    """Raised when connecting to or probing a database fails."""

    kind = "ConnectionError"

    def __init__(self, host: str, cause: object):
        self.cause = cause
        super().__init__(f"Could not connect to host '{host}': {cause}", host=host)


class NotASelectError(BridgeError):
    kind = "NotASelect"

    def __init__(self):
        super().__init__("Only SELECT queries are allowed")


class EmptyQueryError(BridgeError):
    kind = "EmptyQuery"

    def __init__(self):
        super().__init__("Query is required")


class ForbiddenCommandError(BridgeError):
    """Raised when EXPLAIN is asked for anything but SELECT/WITH."""

    kind = "ForbiddenCommand"

    def __init__(self, keyword: str, mutating: bool):
        self.keyword = keyword
        self.mutating = mutating
        if mutating:
            message = f"EXPLAIN accepts read queries only: only SELECT/WITH permitted, got {keyword}"
        else:
            message = f"{keyword}: command not permitted for EXPLAIN (only SELECT/WITH)"
        super().__init__(message)


class NotFoundError(BridgeError):
    """Raised when a table, view, index set or trigger set does not exist."""

    kind = "NotFound"

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message, host=host)


class DatabaseExecutionError(BridgeError):
    """Raised when MySQL rejects the final SQL."""

    kind = "DatabaseExecutionError"

    def __init__(self, host: str, cause: object):
        self.cause = cause
        super().__init__(f"Query failed on host '{host}': {cause}", host=host)


class InvalidArgumentError(BridgeError):
    kind = "InvalidArgument"

    def __init__(self, message: str):
        super().__init__(message)


class UnknownOperationError(BridgeError):
    kind = "UnknownOperation"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unknown tool '{operation}'")
