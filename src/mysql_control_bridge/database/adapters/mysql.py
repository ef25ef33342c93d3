"""MySQL database adapter implementation."""

from typing import Any, Optional, Sequence

import pymysql
import pymysql.cursors

from ...constants import DB_CONNECT_TIMEOUT
from ..errors import DatabaseConnectionError, DatabaseExecutionError
from ..logging import QueryTimer, log_connection, log_query_execution
from .base import BaseAdapter


class MySQLAdapter(BaseAdapter):
    """MySQL-specific database adapter using pymysql driver."""

    def __init__(
        self,
        host_name: str,
        host: str,
        port: int,
        user: str,
        password: Optional[str],
        database: Optional[str],
        via_tunnel: bool = False,
        connect_timeout: int = DB_CONNECT_TIMEOUT,
    ):
        """Initialize MySQL adapter.

        Args:
            host_name: Registry name of the host
            host: Address to connect to
            port: Port to connect to
            user: MySQL user
            password: MySQL password (may be empty)
            database: Default schema
            via_tunnel: Whether host/port is a local tunnel endpoint
            connect_timeout: Connect timeout in seconds
        """
        super().__init__(host_name, host, port, database)
        self.user = user
        self.password = password
        self.via_tunnel = via_tunnel
        self.connect_timeout = connect_timeout

    def connect(self) -> None:
        """Establish MySQL connection.

        Multi-statement execution stays disabled at the protocol level and
        the session is switched to read-only transactions.

        Raises:
            DatabaseConnectionError: If connection fails
        """
        timer = QueryTimer()

        try:
            with timer:
                self.connection = pymysql.connect(
                    host=self.host,
                    port=self.port,
                    user=self.user,
                    password=self.password or "",
                    database=self.database,
                    connect_timeout=self.connect_timeout,
                    charset="utf8mb4",
                    cursorclass=pymysql.cursors.DictCursor,
                    client_flag=0,  # never CLIENT.MULTI_STATEMENTS
                    autocommit=True,
                )
                # Set session to read-only (defense-in-depth)
                with self.connection.cursor() as cursor:
                    cursor.execute("SET SESSION TRANSACTION READ ONLY")

            log_connection(self.host_name, self.target, success=True,
                           via_tunnel=self.via_tunnel, duration=timer.duration)

        except pymysql.Error as e:
            log_connection(self.host_name, self.target, success=False,
                           via_tunnel=self.via_tunnel, error=str(e), duration=timer.duration)
            self._discard_connection()
            raise DatabaseConnectionError(self.host_name, e) from e

    def ping(self) -> bool:
        if not self.connection:
            return False
        try:
            self.connection.ping(reconnect=False)
            return True
        except pymysql.Error:
            return False

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[dict[str, Any]]:
        """Execute SQL with optional driver-bound parameters.

        Args:
            sql: SQL text; ``%s`` placeholders when params are given
            params: Values bound by the driver

        Returns:
            List of result rows (each row is a dictionary)

        Raises:
            DatabaseConnectionError: If not connected
            DatabaseExecutionError: If query execution fails
        """
        if not self.connection:
            raise DatabaseConnectionError(self.host_name, "not connected")

        timer = QueryTimer()
        try:
            with timer:
                with self.connection.cursor() as cursor:
                    cursor.execute(sql, params)
                    results = list(cursor.fetchall())
        except pymysql.Error as e:
            log_query_execution(self.host_name, sql, success=False,
                                error=str(e), duration=timer.duration)
            raise DatabaseExecutionError(self.host_name, e) from e

        log_query_execution(self.host_name, sql, success=True,
                            row_count=len(results), duration=timer.duration)
        return results

    def close(self) -> None:
        """Close MySQL connection."""
        if self.connection:
            try:
                self.connection.close()
            finally:
                self.connection = None

    def _discard_connection(self) -> None:
        if self.connection:
            try:
                self.connection.close()
            except pymysql.Error:
                pass  # Already broken
            self.connection = None
