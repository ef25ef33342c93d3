"""Host registry: which MySQL endpoints exist and how to reach them.

The registry is built once from a resolved environment mapping. Three
configuration shapes are tried in order and the first one present wins:

1. ``MYSQL_HOSTS`` holding a JSON object or array describing every host
2. ``<PREFIX>_MYSQL_*`` / ``<PREFIX>_SSH_*`` keys, one prefix per host
3. Unprefixed ``MYSQL_*`` / ``SSH_*`` keys describing a host named ``default``
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

from ..constants import (
    DEFAULT_HOST_NAME,
    DEFAULT_MYSQL_PORT,
    DEFAULT_SSH_PORT,
    HOSTS_BLOB_VAR,
    LOOPBACK_HOST,
)
from .errors import AmbiguousHostError, UnknownHostError

logger = logging.getLogger(__name__)

# Suffix -> HostConfig field, shared by the prefixed and default shapes
ENV_FIELDS = {
    "MYSQL_HOST": "host",
    "MYSQL_PORT": "port",
    "MYSQL_USER": "user",
    "MYSQL_PASSWORD": "password",
    "MYSQL_DATABASE": "database",
    "SSH_HOST": "ssh_host",
    "SSH_PORT": "ssh_port",
    "SSH_USER": "ssh_user",
    "SSH_KEY_PATH": "ssh_key_path",
    "SSH_PASSPHRASE": "ssh_passphrase",
}

PREFIXED_KEY = re.compile(
    r"^(?P<prefix>[A-Za-z0-9_]+?)_(?P<suffix>" + "|".join(ENV_FIELDS) + r")$"
)

# Nested "ssh" object keys in the JSON shape
SSH_BLOB_FIELDS = {
    "host": "ssh_host",
    "port": "ssh_port",
    "user": "ssh_user",
    "username": "ssh_user",
    "key_path": "ssh_key_path",
    "passphrase": "ssh_passphrase",
}

REQUIRED_FIELDS = ("user", "database")


class InvalidHostEntry(ValueError):
    """Raised while parsing a single host entry that cannot be used."""


@dataclass(frozen=True)
class HostConfig:
    """Connection parameters for one named MySQL endpoint."""

    name: str
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    ssh_host: Optional[str] = None
    ssh_port: int = DEFAULT_SSH_PORT
    ssh_user: Optional[str] = None
    ssh_key_path: Optional[str] = None
    ssh_passphrase: Optional[str] = None

    @property
    def ssh_configured(self) -> bool:
        """True only when address, username and key path are all set."""
        return bool(self.ssh_host and self.ssh_user and self.ssh_key_path)

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def describe_target(self) -> str:
        """Human-readable target without credentials, for logs and listings."""
        target = (
            f"{self.user or '?'}@{self.host or LOOPBACK_HOST}:"
            f"{self.port or DEFAULT_MYSQL_PORT}/{self.database or '?'}"
        )
        if self.ssh_configured:
            target += f" via ssh {self.ssh_user}@{self.ssh_host}:{self.ssh_port}"
        return target


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _secret(value: Any) -> Optional[str]:
    # Secrets keep surrounding whitespace
    if value is None or value == "":
        return None
    return str(value)


def _parse_port(value: Any, field: str) -> Optional[int]:
    text = _clean(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        raise InvalidHostEntry(f"{field} must be an integer, got {text!r}") from None


def build_host_config(name: str, fields: Mapping[str, Any]) -> HostConfig:
    """Build a HostConfig from raw field values.

    Args:
        name: Host name (registry key)
        fields: Values keyed by HostConfig field name

    Returns:
        HostConfig with blanks normalized to None

    Raises:
        InvalidHostEntry: If a port is not an integer
    """
    ssh_port = _parse_port(fields.get("ssh_port"), "ssh_port")
    return HostConfig(
        name=name,
        host=_clean(fields.get("host")),
        port=_parse_port(fields.get("port"), "port"),
        user=_clean(fields.get("user")),
        password=_secret(fields.get("password")),
        database=_clean(fields.get("database")),
        ssh_host=_clean(fields.get("ssh_host")),
        ssh_port=ssh_port if ssh_port is not None else DEFAULT_SSH_PORT,
        ssh_user=_clean(fields.get("ssh_user")),
        ssh_key_path=_clean(fields.get("ssh_key_path")),
        ssh_passphrase=_secret(fields.get("ssh_passphrase")),
    )


def _blob_entry_fields(entry: Mapping[str, Any]) -> dict[str, Any]:
    fields = {key: value for key, value in entry.items() if key not in ("name", "ssh")}
    ssh = entry.get("ssh")
    if isinstance(ssh, Mapping):
        for key, value in ssh.items():
            target = SSH_BLOB_FIELDS.get(key)
            if target:
                fields.setdefault(target, value)
    return fields


def load_from_blob(environ: Mapping[str, str]) -> Optional[dict[str, dict[str, Any]]]:
    """Read hosts from the ``MYSQL_HOSTS`` JSON blob."""
    raw = environ.get(HOSTS_BLOB_VAR)
    if not raw or not raw.strip():
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"{HOSTS_BLOB_VAR} is not valid JSON ({e}); ignoring it")
        return None

    if isinstance(data, Mapping):
        items = [(str(name), entry) for name, entry in data.items()]
    elif isinstance(data, list):
        items = [(str(entry.get("name", "")) if isinstance(entry, Mapping) else "", entry) for entry in data]
    else:
        logger.error(f"{HOSTS_BLOB_VAR} must be a JSON object or array; ignoring it")
        return None

    hosts = {}
    for name, entry in items:
        if not name or not isinstance(entry, Mapping):
            logger.warning(f"Skipping {HOSTS_BLOB_VAR} entry without a name or body: {name!r}")
            continue
        hosts[name] = _blob_entry_fields(entry)
    return hosts


def load_from_prefixed(environ: Mapping[str, str]) -> Optional[dict[str, dict[str, Any]]]:
    """Read hosts from ``<PREFIX>_MYSQL_*`` and ``<PREFIX>_SSH_*`` keys."""
    groups: dict[str, dict[str, Any]] = {}
    has_mysql_key: set[str] = set()

    for key, value in environ.items():
        match = PREFIXED_KEY.match(key)
        if not match:
            continue
        prefix = match.group("prefix")
        suffix = match.group("suffix")
        groups.setdefault(prefix, {})[ENV_FIELDS[suffix]] = value
        if suffix.startswith("MYSQL_"):
            has_mysql_key.add(prefix)

    hosts = {prefix.lower(): fields for prefix, fields in groups.items() if prefix in has_mysql_key}
    return hosts or None


def load_default(environ: Mapping[str, str]) -> Optional[dict[str, dict[str, Any]]]:
    """Read the implicit ``default`` host from unprefixed variables."""
    if not _clean(environ.get("MYSQL_USER")):
        return None
    fields = {field: environ.get(key) for key, field in ENV_FIELDS.items()}
    return {DEFAULT_HOST_NAME: fields}


HostLoader = Callable[[Mapping[str, str]], Optional[dict[str, dict[str, Any]]]]

# Tried in order; the first loader returning a mapping is the only source used
HOST_LOADERS: tuple[tuple[str, HostLoader], ...] = (
    ("json", load_from_blob),
    ("prefixed", load_from_prefixed),
    ("default", load_default),
)


class HostRegistry:
    """Immutable mapping from host name to HostConfig."""

    def __init__(self, hosts: Optional[Mapping[str, HostConfig]] = None, source: Optional[str] = None):
        self._hosts: dict[str, HostConfig] = dict(hosts or {})
        self.source = source

    @classmethod
    def load(cls, environ: Mapping[str, str]) -> "HostRegistry":
        """Build the registry from the first configuration shape present.

        Never raises for bad configuration: problems are logged and the
        affected entries skipped. An empty registry is valid.

        Args:
            environ: Resolved key-value environment

        Returns:
            HostRegistry populated from a single source
        """
        for source, loader in HOST_LOADERS:
            raw_hosts = loader(environ)
            if raw_hosts is None:
                continue

            hosts = {}
            for name, fields in raw_hosts.items():
                try:
                    config = build_host_config(name, fields)
                except InvalidHostEntry as e:
                    logger.warning(f"Skipping host '{name}': {e}")
                    continue
                missing = config.missing_fields()
                if missing:
                    logger.warning(f"Skipping host '{name}': missing {', '.join(missing)}")
                    continue
                hosts[name] = config

            logger.info(f"Loaded {len(hosts)} host(s) from {source} configuration: {', '.join(sorted(hosts)) or 'none'}")
            return cls(hosts, source=source)

        logger.warning("No database host configuration found")
        return cls({}, source=None)

    def names(self) -> list[str]:
        return sorted(self._hosts)

    def get(self, name: str) -> HostConfig:
        try:
            return self._hosts[name]
        except KeyError:
            raise UnknownHostError(name, self.names()) from None

    def resolve(self, selector: Optional[str] = None) -> str:
        """Pick the host a request should run against.

        Args:
            selector: Host name from the request, or None

        Returns:
            Name of a registered host

        Raises:
            UnknownHostError: If selector names no registered host
            AmbiguousHostError: If selector is omitted and the registry
                does not hold exactly one host
        """
        if selector:
            if selector not in self._hosts:
                raise UnknownHostError(selector, self.names())
            return selector
        if len(self._hosts) == 1:
            return next(iter(self._hosts))
        raise AmbiguousHostError(self.names())

    def __contains__(self, name: object) -> bool:
        return name in self._hosts

    def __iter__(self) -> Iterator[HostConfig]:
        return iter(self._hosts[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._hosts)
