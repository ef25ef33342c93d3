"""Structured logging for connections, tunnels and queries."""

import hashlib
import json
import logging
import time
from typing import Optional

# Child of the package logger, so records reach its stderr handler
db_logger = logging.getLogger("mysql_control_bridge.database")


def hash_query(query: str) -> str:
    """Short stable fingerprint of a query, to group log lines without storing the SQL."""
    return hashlib.sha256(query.encode("utf-8")).hexdigest()[:16]


def preview(query: str, length: int = 100) -> str:
    return query[:length] + ("..." if len(query) > length else "")


def log_connection(
    host: str,
    target: str,
    success: bool,
    via_tunnel: bool = False,
    error: Optional[str] = None,
    duration: float = 0.0,
) -> None:
    """Log database connection attempt.

    Args:
        host: Registry host name
        target: Connect target without credentials (host:port/database)
        success: Whether connection succeeded
        via_tunnel: Whether the target is a local tunnel endpoint
        error: Error message if failed
        duration: Connection time in seconds
    """
    log_data = {
        "event": "database_connection",
        "host": host,
        "target": target,
        "via_tunnel": via_tunnel,
        "success": success,
        "duration_seconds": round(duration, 3),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_tunnel(
    host: str,
    operation: str,
    ssh_target: str,
    local_port: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """Log SSH tunnel lifecycle events.

    Args:
        host: Registry host name
        operation: Event type (open, open_failed, close, close_failed)
        ssh_target: user@host:port of the SSH server
        local_port: Bound loopback port, when known
        error: Error message if failed
    """
    log_data = {
        "event": "ssh_tunnel",
        "host": host,
        "operation": operation,
        "ssh": ssh_target,
    }

    if local_port is not None:
        log_data["local_port"] = local_port
    if error:
        log_data["error"] = error
        db_logger.error(json.dumps(log_data))
    else:
        db_logger.info(json.dumps(log_data))


def log_query_execution(
    host: str,
    query: str,
    success: bool,
    row_count: int = 0,
    duration: float = 0.0,
    error: Optional[str] = None,
    blocked: bool = False,
) -> None:
    """Log query execution with metadata.

    Security audit: Blocked queries are logged at WARNING level with query
    hash and the rejection reason.

    Args:
        host: Registry host name (or None when no host was resolved)
        query: SQL query (hashed and previewed, never logged in full)
        success: Whether query executed successfully
        row_count: Number of rows returned
        duration: Query execution time in seconds
        error: Error message if failed
        blocked: Whether the sanitizer rejected the query
    """
    log_data = {
        "event": "query_execution",
        "host": host,
        "query_hash": hash_query(query),
        "query_preview": preview(query),
        "success": success,
        "blocked": blocked,
        "row_count": row_count,
        "duration_seconds": round(duration, 3),
        "timestamp": time.time(),
    }

    if error:
        log_data["error"] = error

    if blocked:
        db_logger.warning(json.dumps(log_data))
    elif success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_pool_operation(host: str, operation: str, established: int) -> None:
    """Log connection pool operations.

    Args:
        host: Registry host name
        operation: Operation type (reuse, probe_failed, store, release)
        established: Number of hosts with a live entry afterwards
    """
    log_data = {
        "event": "connection_pool",
        "host": host,
        "operation": operation,
        "established_hosts": established,
    }

    db_logger.debug(json.dumps(log_data))


class QueryTimer:
    """Measure wall time of a connect or query block; read ``duration`` afterwards."""

    def __init__(self):
        self._started: float = 0.0
        self.duration: float = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self._started
