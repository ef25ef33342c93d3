"""MySQL Control Bridge - read-only MySQL tools for MCP clients, with SSH tunnels."""

from .constants import SERVER_VERSION

__version__ = SERVER_VERSION
