"""Database layer for the MySQL Control Bridge.

Architecture:
- hosts.py: Host registry built from the environment
- tunnel.py: SSH tunnel provisioning
- connection.py: Per-host connection pool with health probes
- validation.py: Query sanitizing and read-only enforcement
- formatting.py: Result formatting for AI consumption
- adapters/: Driver wrappers (MySQL)
"""

from mysql_control_bridge.database.connection import ConnectionPool
from mysql_control_bridge.database.errors import BridgeError
from mysql_control_bridge.database.formatting import format_error, format_operation_result
from mysql_control_bridge.database.hosts import HostConfig, HostRegistry
from mysql_control_bridge.database.tunnel import TunnelProvisioner
from mysql_control_bridge.database.validation import prepare_explain, prepare_select

__all__ = [
    "BridgeError",
    "ConnectionPool",
    "HostConfig",
    "HostRegistry",
    "TunnelProvisioner",
    "format_error",
    "format_operation_result",
    "prepare_explain",
    "prepare_select",
]
