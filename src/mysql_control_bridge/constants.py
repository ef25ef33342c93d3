"""Constants and static configuration for the MySQL Control Bridge MCP server."""

# Application constants
SERVER_NAME = "mysql-control-bridge"
SERVER_VERSION = "1.2.0"
EXIT_SUCCESS = 0
EXIT_FAILURE = 1

# Query limits
DEFAULT_QUERY_LIMIT = 100  # Rows appended as LIMIT when the caller gives none
MAX_QUERY_LIMIT = 1000  # Hard ceiling for caller-supplied limits

# Network defaults
LOOPBACK_HOST = "127.0.0.1"
DEFAULT_MYSQL_PORT = 3306
DEFAULT_SSH_PORT = 22
SSH_CONNECT_TIMEOUT = 20.0  # 20 seconds for the SSH session to become ready
DB_CONNECT_TIMEOUT = 10  # pymysql connect timeout, seconds

# Host registry
DEFAULT_HOST_NAME = "default"
HOSTS_BLOB_VAR = "MYSQL_HOSTS"

# Environment loading
ENV_FILE_NAME = ".env"
CURSOR_DIR_NAME = ".cursor"
MAX_INTERPOLATION_PASSES = 10
