"""Tool descriptions and input schemas for the MySQL Control Bridge MCP server."""

import mcp.types as types

from .constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT


class ToolDescriptions:
    """Centralized management of tool descriptions and input schemas."""

    TOOLS = {
        "execute_select_query": (
            "Execute SELECT Query",
            "Run a read-only SELECT query. Comments are stripped and a LIMIT is added "
            f"when the query has none (default {DEFAULT_QUERY_LIMIT}, maximum {MAX_QUERY_LIMIT}).",
        ),
        "describe_table": (
            "Describe Table",
            "Show a table's columns, types, keys, defaults and general information.",
        ),
        "describe_view": (
            "Describe View",
            "Show a view's definition, columns and CREATE statement.",
        ),
        "describe_indexes": (
            "Describe Indexes",
            "List every index of a table.",
        ),
        "describe_triggers": (
            "Describe Triggers",
            "List triggers of a table, or of the whole database when no table is given.",
        ),
        "describe_procedures": (
            "Describe Procedures",
            "List stored procedures and functions of the database.",
        ),
        "explain_query": (
            "Explain Query",
            "Show the execution plan of a SELECT or WITH query.",
        ),
        "show_tables": (
            "Show Tables",
            "List tables and views of the host's database.",
        ),
        "show_databases": (
            "Show Databases",
            "List databases available on the server.",
        ),
        "list_hosts": (
            "List Hosts",
            "List configured database hosts and whether each is connected. Does not open connections.",
        ),
    }

    @classmethod
    def get_host_description(cls, host_names: list[str]) -> str:
        """Describe the host selector, naming the configured hosts."""
        if not host_names:
            return "Configured host name (no hosts are configured)"
        if len(host_names) == 1:
            return f"Configured host name (optional, only host: {host_names[0]})"
        return f"Configured host name. Required; one of: {', '.join(host_names)}"

    @classmethod
    def get_input_schema(cls, name: str, host_names: list[str]) -> dict:
        """Build the JSON schema of one tool's arguments."""
        properties: dict = {}
        required: list[str] = []

        if name == "execute_select_query":
            properties["query"] = {"type": "string", "description": "SELECT query to execute"}
            properties["limit"] = {
                "type": "integer",
                "description": f"Row limit (maximum {MAX_QUERY_LIMIT})",
                "default": DEFAULT_QUERY_LIMIT,
                "maximum": MAX_QUERY_LIMIT,
            }
            required.append("query")
        elif name in ("describe_table", "describe_indexes"):
            properties["tableName"] = {"type": "string", "description": "Table name"}
            required.append("tableName")
        elif name == "describe_view":
            properties["viewName"] = {"type": "string", "description": "View name"}
            required.append("viewName")
        elif name == "describe_triggers":
            properties["tableName"] = {
                "type": "string",
                "description": "Table name (optional, empty lists every trigger)",
            }
        elif name == "explain_query":
            properties["query"] = {"type": "string", "description": "SELECT or WITH query to analyze"}
            required.append("query")

        if name != "list_hosts":
            properties["host"] = {"type": "string", "description": cls.get_host_description(host_names)}
            if host_names:
                properties["host"]["enum"] = list(host_names)

        schema = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    @classmethod
    def build_tools(cls, host_names: list[str]) -> list[types.Tool]:
        """All tools advertised by the server."""
        return [
            types.Tool(
                name=name,
                title=title,
                description=description,
                inputSchema=cls.get_input_schema(name, host_names),
            )
            for name, (title, description) in cls.TOOLS.items()
        ]
