"""Abstract base class for database adapters."""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence


class BaseAdapter(ABC):
    """Abstract base class for one live database connection.

    The connection pool only relies on this interface, which keeps it
    independent of the driver and lets tests substitute fakes.
    """

    def __init__(self, host_name: str, host: str, port: int, database: Optional[str]):
        """Initialize adapter with connection parameters.

        Args:
            host_name: Registry name of the host this connection serves
            host: Address to connect to (a tunnel endpoint when tunneled)
            port: Port to connect to
            database: Default schema
        """
        self.host_name = host_name
        self.host = host
        self.port = port
        self.database = database
        self.connection: Optional[Any] = None

    @property
    def target(self) -> str:
        """Connect target for logging (no credentials)."""
        return f"{self.host}:{self.port}/{self.database}"

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection.

        Raises:
            DatabaseConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Health probe: one lightweight round-trip.

        Returns:
            True if the connection is usable
        """
        pass

    @abstractmethod
    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[dict[str, Any]]:
        """Execute SQL and return rows as dictionaries.

        Raises:
            DatabaseExecutionError: If the server rejects the statement
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connection and release resources."""
        pass

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
