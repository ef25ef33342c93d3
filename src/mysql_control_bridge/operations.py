"""Tool operations: resolve host, acquire connection, sanitize, execute."""

import logging
from typing import Any, Callable, Optional

from .database.connection import ConnectionPool
from .database.errors import (
    BridgeError,
    InvalidArgumentError,
    NotFoundError,
    UnknownOperationError,
)
from .database.hosts import HostConfig, HostRegistry
from .database.logging import log_query_execution
from .database.validation import prepare_explain, prepare_select
from .models import OperationResult, ResultSection

logger = logging.getLogger(__name__)

TABLE_COLUMNS_SQL = """
    SELECT
      COLUMN_NAME AS `Field`,
      COLUMN_TYPE AS `Type`,
      IS_NULLABLE AS `Null`,
      COLUMN_KEY AS `Key`,
      COLUMN_DEFAULT AS `Default`,
      EXTRA AS `Extra`,
      COLUMN_COMMENT AS `Comment`
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

TABLE_INFO_SQL = """
    SELECT
      TABLE_TYPE AS `Type`,
      ENGINE AS `Engine`,
      TABLE_ROWS AS `Rows`,
      TABLE_COLLATION AS `Collation`,
      TABLE_COMMENT AS `Comment`
    FROM information_schema.TABLES
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
"""

VIEW_DEFINITION_SQL = """
    SELECT
      TABLE_NAME AS `Name`,
      VIEW_DEFINITION AS `Definition`,
      CHECK_OPTION AS `CheckOption`,
      IS_UPDATABLE AS `Updatable`,
      DEFINER AS `Definer`,
      SECURITY_TYPE AS `SecurityType`
    FROM information_schema.VIEWS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
"""

VIEW_COLUMNS_SQL = """
    SELECT
      COLUMN_NAME AS `Field`,
      DATA_TYPE AS `DataType`,
      IS_NULLABLE AS `Null`,
      COLUMN_DEFAULT AS `Default`,
      COLUMN_COMMENT AS `Comment`
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

INDEXES_SQL = """
    SELECT
      INDEX_NAME AS `IndexName`,
      COLUMN_NAME AS `Column`,
      NON_UNIQUE AS `NonUnique`,
      SEQ_IN_INDEX AS `Sequence`,
      COLLATION AS `Collation`,
      CARDINALITY AS `Cardinality`,
      INDEX_TYPE AS `IndexType`,
      COMMENT AS `Comment`
    FROM information_schema.STATISTICS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY INDEX_NAME, SEQ_IN_INDEX
"""

TRIGGERS_SQL = """
    SELECT
      TRIGGER_NAME AS `TriggerName`,
      EVENT_MANIPULATION AS `Event`,
      EVENT_OBJECT_TABLE AS `Table`,
      ACTION_TIMING AS `Timing`,
      ACTION_STATEMENT AS `Statement`,
      ACTION_ORIENTATION AS `Orientation`,
      DEFINER AS `Definer`,
      CREATED AS `Created`
    FROM information_schema.TRIGGERS
    WHERE TRIGGER_SCHEMA = %s
"""

ROUTINES_SQL = """
    SELECT
      ROUTINE_NAME AS `Name`,
      ROUTINE_TYPE AS `Type`,
      DEFINER AS `Definer`,
      CREATED AS `Created`,
      LAST_ALTERED AS `LastAltered`,
      ROUTINE_COMMENT AS `Comment`
    FROM information_schema.ROUTINES
    WHERE ROUTINE_SCHEMA = %s
    ORDER BY ROUTINE_NAME
"""

TABLES_SQL = """
    SELECT
      TABLE_NAME AS `Name`,
      TABLE_TYPE AS `Type`,
      ENGINE AS `Engine`,
      TABLE_ROWS AS `Rows`,
      TABLE_COLLATION AS `Collation`,
      TABLE_COMMENT AS `Comment`
    FROM information_schema.TABLES
    WHERE TABLE_SCHEMA = %s
    ORDER BY TABLE_TYPE, TABLE_NAME
"""

DATABASES_SQL = """
    SELECT
      SCHEMA_NAME AS `Name`,
      DEFAULT_CHARACTER_SET_NAME AS `DefaultCharset`,
      DEFAULT_COLLATION_NAME AS `DefaultCollation`
    FROM information_schema.SCHEMATA
    ORDER BY SCHEMA_NAME
"""


def _require(arguments: dict, key: str) -> str:
    value = arguments.get(key)
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"'{key}' is required")
    return str(value).strip()


def _optional(arguments: dict, key: str) -> str:
    value = arguments.get(key)
    return "" if value is None else str(value).strip()


class OperationDispatcher:
    """Maps tool names to read-only database operations.

    Every operation except ``list_hosts`` resolves the ``host`` argument,
    borrows that host's connection from the pool, and returns an
    OperationResult for the formatting layer.
    """

    def __init__(self, registry: HostRegistry, pool: ConnectionPool):
        self.registry = registry
        self.pool = pool
        self._operations: dict[str, Callable[[Any, HostConfig, dict], OperationResult]] = {
            "execute_select_query": self.execute_select_query,
            "describe_table": self.describe_table,
            "describe_view": self.describe_view,
            "describe_indexes": self.describe_indexes,
            "describe_triggers": self.describe_triggers,
            "describe_procedures": self.describe_procedures,
            "explain_query": self.explain_query,
            "show_tables": self.show_tables,
            "show_databases": self.show_databases,
        }

    @property
    def operation_names(self) -> list[str]:
        return [*self._operations, "list_hosts"]

    def dispatch(self, operation: str, arguments: Optional[dict] = None) -> OperationResult:
        """Run one tool invocation.

        Args:
            operation: Tool name
            arguments: Tool arguments; ``host`` selects the target

        Returns:
            OperationResult carrying the resolved host name

        Raises:
            BridgeError: Any failure, as a structured error
        """
        arguments = arguments or {}

        if operation == "list_hosts":
            return self.list_hosts()

        handler = self._operations.get(operation)
        if handler is None:
            raise UnknownOperationError(operation)

        host_name = self.registry.resolve(arguments.get("host") or None)
        config = self.registry.get(host_name)

        with self.pool.connection(host_name) as connection:
            return handler(connection, config, arguments)

    def list_hosts(self) -> OperationResult:
        rows = [
            {
                "Host": config.name,
                "Target": config.describe_target(),
                "Database": config.database,
                "SSH": "yes" if config.ssh_configured else "no",
                "Connected": "yes" if self.pool.is_established(config.name) else "no",
            }
            for config in self.registry
        ]
        result = OperationResult(operation="list_hosts", sections=[ResultSection("Configured hosts", rows)])
        if not rows:
            result.message = "No database hosts are configured"
        return result

    def execute_select_query(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        query = _require(arguments, "query")
        try:
            final_query = prepare_select(query, arguments.get("limit"))
        except BridgeError as e:
            log_query_execution(config.name, query, success=False, error=e.message, blocked=True)
            raise

        rows = connection.execute(final_query)
        return OperationResult(
            operation="execute_select_query",
            host=config.name,
            database=config.database,
            sections=[ResultSection(f"Results ({len(rows)} rows)", rows, sql=final_query)],
        )

    def describe_table(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        table = _require(arguments, "tableName")
        columns = connection.execute(TABLE_COLUMNS_SQL, (config.database, table))
        if not columns:
            raise NotFoundError(f"Table '{table}' not found in database '{config.database}'", host=config.name)

        table_info = connection.execute(TABLE_INFO_SQL, (config.database, table))
        return OperationResult(
            operation="describe_table",
            host=config.name,
            database=config.database,
            sections=[
                ResultSection(f"Table `{table}`: general information", table_info[:1]),
                ResultSection("Columns", columns),
            ],
        )

    def describe_view(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        view = _require(arguments, "viewName")
        definition = connection.execute(VIEW_DEFINITION_SQL, (config.database, view))
        if not definition:
            raise NotFoundError(f"View '{view}' not found in database '{config.database}'", host=config.name)

        columns = connection.execute(VIEW_COLUMNS_SQL, (config.database, view))
        body = definition[0].get("Definition") or ""
        return OperationResult(
            operation="describe_view",
            host=config.name,
            database=config.database,
            sections=[
                ResultSection(f"View `{view}`: definition", definition[:1]),
                ResultSection("Columns", columns),
                ResultSection("View SQL", sql=f"CREATE OR REPLACE VIEW `{view}` AS {body}"),
            ],
        )

    def describe_indexes(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        table = _require(arguments, "tableName")
        indexes = connection.execute(INDEXES_SQL, (config.database, table))
        if not indexes:
            raise NotFoundError(
                f"No indexes found for table '{table}', or the table does not exist", host=config.name
            )
        return OperationResult(
            operation="describe_indexes",
            host=config.name,
            database=config.database,
            sections=[ResultSection(f"Indexes of table `{table}`", indexes)],
        )

    def describe_triggers(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        table = _optional(arguments, "tableName")
        sql = TRIGGERS_SQL
        params: list[Any] = [config.database]
        if table:
            sql += " AND EVENT_OBJECT_TABLE = %s"
            params.append(table)
        sql += " ORDER BY TRIGGER_NAME"

        triggers = connection.execute(sql, params)
        if not triggers:
            if table:
                raise NotFoundError(f"No triggers found for table '{table}'", host=config.name)
            raise NotFoundError(f"No triggers found in database '{config.database}'", host=config.name)

        title = f"Triggers of table `{table}`" if table else "Triggers"
        return OperationResult(
            operation="describe_triggers",
            host=config.name,
            database=config.database,
            sections=[ResultSection(title, triggers)],
        )

    def describe_procedures(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        routines = connection.execute(ROUTINES_SQL, (config.database,))
        result = OperationResult(
            operation="describe_procedures",
            host=config.name,
            database=config.database,
            sections=[ResultSection(f"Stored procedures and functions of `{config.database}`", routines)],
        )
        if not routines:
            result.message = f"No stored procedures or functions found in database '{config.database}'"
        return result

    def explain_query(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        query = _optional(arguments, "query")
        try:
            checked = prepare_explain(query)
        except BridgeError as e:
            log_query_execution(config.name, query, success=False, error=e.message, blocked=True)
            raise

        plan = connection.execute(f"EXPLAIN {checked}")
        return OperationResult(
            operation="explain_query",
            host=config.name,
            database=config.database,
            sections=[ResultSection("Execution plan", plan, sql=checked)],
        )

    def show_tables(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        tables = connection.execute(TABLES_SQL, (config.database,))
        result = OperationResult(
            operation="show_tables",
            host=config.name,
            database=config.database,
            sections=[ResultSection(f"Tables and views of `{config.database}`", tables)],
        )
        if not tables:
            result.message = f"No tables found in database '{config.database}'"
        return result

    def show_databases(self, connection, config: HostConfig, arguments: dict) -> OperationResult:
        databases = connection.execute(DATABASES_SQL)
        result = OperationResult(
            operation="show_databases",
            host=config.name,
            database=config.database,
            sections=[ResultSection("Available databases", databases)],
        )
        if not databases:
            result.message = "No databases found"
        return result
