"""Database adapters."""

from .base import BaseAdapter
from .mysql import MySQLAdapter

__all__ = [
    "BaseAdapter",
    "MySQLAdapter",
    "create_adapter",
]


def create_adapter(config, host: str, port: int, via_tunnel: bool = False) -> BaseAdapter:
    """Factory function used by the connection pool.

    Args:
        config: HostConfig supplying credentials and default schema
        host: Effective connect address (tunnel endpoint or database host)
        port: Effective connect port
        via_tunnel: Whether host/port is a local tunnel endpoint

    Returns:
        Unconnected MySQLAdapter
    """
    return MySQLAdapter(
        host_name=config.name,
        host=host,
        port=port,
        user=config.user,
        password=config.password,
        database=config.database,
        via_tunnel=via_tunnel,
    )
