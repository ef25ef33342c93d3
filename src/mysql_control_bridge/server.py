"""MySQL Control Bridge MCP server - read-only MySQL tools over stdio."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

from mcp.server import Server
import mcp.server.stdio
import mcp.types as types
from mcp.server.models import InitializationOptions
from mcp.server.lowlevel import NotificationOptions

from .config import load_environment
from .constants import EXIT_FAILURE, EXIT_SUCCESS, SERVER_NAME, SERVER_VERSION
from .database.connection import ConnectionPool
from .database.errors import BridgeError
from .database.formatting import format_error, format_operation_result
from .database.hosts import HostRegistry
from .operations import OperationDispatcher
from .tool_definitions import ToolDescriptions

# Set up package logger on stderr; stdout carries the MCP transport
logger = logging.getLogger("mysql_control_bridge")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler(sys.stderr)
handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
logger.addHandler(handler)


class BridgeServer(Server):
    """Extended MCP Server that owns the host registry and connection pool."""

    def __init__(self, name: str, registry: HostRegistry, pool: ConnectionPool):
        super().__init__(name)
        self.registry = registry
        self.pool = pool
        self.dispatcher = OperationDispatcher(registry, pool)


def build_server(environ: dict) -> BridgeServer:
    registry = HostRegistry.load(environ)
    pool = ConnectionPool(registry)
    return BridgeServer(SERVER_NAME, registry, pool)


async def call_operation(server: BridgeServer, name: str, arguments: dict) -> str:
    """Run one tool call off the event loop and render the outcome.

    Every failure becomes an ``Error: ...`` text so a bad request never
    takes the server down.
    """
    try:
        result = await asyncio.to_thread(server.dispatcher.dispatch, name, arguments)
        return format_operation_result(result)
    except BridgeError as e:
        logger.error(f"Error in {name}: {e.kind}: {e.message}")
        return format_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error in {name}: {type(e).__name__}: {e}")
        return f"Error: {type(e).__name__}: {e}"


def test_host_connections(server: BridgeServer) -> bool:
    """Connect to and probe every configured host.

    Args:
        server: BridgeServer instance

    Returns:
        True if every host answered, False otherwise
    """
    print()
    print("Testing database hosts...")

    if not len(server.registry):
        print("No database hosts are configured.")
        return False

    all_ok = True
    try:
        for config in server.registry:
            print(f"  {config.name}: {config.describe_target()}")
            try:
                server.pool.acquire(config.name)
                print("    [PASSED] connected")
            except BridgeError as e:
                all_ok = False
                print(f"    [FAILED] {e.kind}: {e.message}")
    finally:
        server.pool.release_all()

    return all_ok


def parse_args(args: list[str]) -> tuple[bool, list[Path]]:
    """Parse ``--test`` and ``--env-file PATH`` flags."""
    test_mode = False
    env_files: list[Path] = []

    i = 0
    while i < len(args):
        if args[i] == "--test":
            test_mode = True
            i += 1
        elif args[i] == "--env-file":
            if i + 1 >= len(args):
                sys.stderr.write("Error: --env-file requires a value\n")
                sys.exit(EXIT_FAILURE)
            env_files.append(Path(args[i + 1]).expanduser())
            i += 2
        elif args[i] in ("-h", "--help"):
            sys.stderr.write("Usage: mysql-control-bridge [--env-file <path>] [--test]\n")
            sys.stderr.write("\n")
            sys.stderr.write("Host configuration (first match wins):\n")
            sys.stderr.write("  MYSQL_HOSTS='{\"prod\": {\"host\": ..., \"user\": ..., \"database\": ...}}'\n")
            sys.stderr.write("  PROD_MYSQL_HOST, PROD_MYSQL_USER, PROD_MYSQL_DATABASE, PROD_SSH_HOST, ...\n")
            sys.stderr.write("  MYSQL_HOST, MYSQL_USER, MYSQL_DATABASE, SSH_HOST, ... (host 'default')\n")
            sys.stderr.write("\n")
            sys.stderr.write("Optional Flags:\n")
            sys.stderr.write("  --env-file <path>  - Extra .env file (does not override set variables)\n")
            sys.stderr.write("  --test             - Connect to every host and exit\n")
            sys.exit(EXIT_SUCCESS)
        else:
            sys.stderr.write(f"Error: Unknown argument '{args[i]}'\n")
            sys.stderr.write("Usage: mysql-control-bridge [--env-file <path>] [--test]\n")
            sys.exit(EXIT_FAILURE)

    return test_mode, env_files


async def main():
    """Parse command line arguments and run the server."""
    test_mode, env_files = parse_args(sys.argv[1:])

    environ = load_environment(extra_files=tuple(env_files))
    server = build_server(environ)
    host_names = server.registry.names()

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        """List available tools; the host selector enumerates configured hosts."""
        return ToolDescriptions.build_tools(host_names)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
        """Handle tool calls."""
        text = await call_operation(server, name, arguments or {})
        return [types.TextContent(type="text", text=text)]

    # Show startup information
    logger.info(f"Starting MySQL Control Bridge MCP Server v{SERVER_VERSION}")
    if host_names:
        logger.info(f"Configuration source: {server.registry.source}")
        for config in server.registry:
            logger.info(f"  - {config.name}: {config.describe_target()}")
    else:
        logger.warning("No database hosts configured; every tool call will fail until configuration is fixed")

    if test_mode:
        success = await asyncio.to_thread(test_host_connections, server)
        sys.exit(EXIT_SUCCESS if success else EXIT_FAILURE)

    # SIGTERM cancels the server so the finally block below still releases connections
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, asyncio.current_task().cancel)
    except NotImplementedError:
        pass  # Windows event loops

    try:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            instructions = (
                f"Read-only MySQL access. Configured hosts: {', '.join(host_names)}. "
                + ("Pass 'host' on every call." if len(host_names) > 1 else "The 'host' argument may be omitted.")
            ) if host_names else "No database hosts are configured."

            init_options = InitializationOptions(
                server_name=SERVER_NAME,
                server_version=SERVER_VERSION,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
                instructions=instructions,
            )
            await server.run(read_stream, write_stream, init_options)
    finally:
        logger.info("Disconnecting...")
        await asyncio.to_thread(server.pool.release_all)


def run():
    """Entry point for the mysql-control-bridge command."""
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass


if __name__ == "__main__":
    run()
