"""Per-host connection management with tunnel ownership and health probes."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from ..constants import DEFAULT_MYSQL_PORT, LOOPBACK_HOST
from .adapters import BaseAdapter, create_adapter
from .errors import DatabaseConnectionError, MissingConfigError
from .hosts import HostConfig, HostRegistry
from .logging import log_pool_operation
from .tunnel import TunnelHandle, TunnelProvisioner

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., BaseAdapter]


@dataclass
class ConnectionEntry:
    """The live connection for one host plus the tunnel it owns."""

    config: HostConfig
    adapter: BaseAdapter
    tunnel: Optional[TunnelHandle] = None


class ConnectionPool:
    """At most one live connection per registered host.

    Connections are opened lazily on first use, probed before every reuse and
    rebuilt (together with their tunnel) when the probe fails. Acquisition is
    serialized per host so concurrent requests never open duplicate tunnels.

    Thread-safe: ``_lock`` guards the entry and lock maps, and one re-entrant
    lock per host guards establishment and use of that host's connection.
    """

    def __init__(
        self,
        registry: HostRegistry,
        provisioner: Optional[TunnelProvisioner] = None,
        adapter_factory: AdapterFactory = create_adapter,
    ):
        """Initialize connection pool.

        Args:
            registry: Hosts this pool may connect to
            provisioner: Opens SSH tunnels; defaults to TunnelProvisioner()
            adapter_factory: Callable(config, host, port, via_tunnel) -> adapter
        """
        self.registry = registry
        self.provisioner = provisioner or TunnelProvisioner()
        self.adapter_factory = adapter_factory
        self._entries: dict[str, ConnectionEntry] = {}
        self._host_locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _host_lock(self, host_name: str) -> threading.RLock:
        with self._lock:
            lock = self._host_locks.get(host_name)
            if lock is None:
                lock = self._host_locks[host_name] = threading.RLock()
            return lock

    def acquire(self, host_name: str) -> BaseAdapter:
        """Return a ready connection for the host, opening one if needed.

        Args:
            host_name: Registered host name

        Returns:
            Connected adapter

        Raises:
            UnknownHostError: If the host is not registered
            MissingConfigError: If required fields are absent
            KeyFileNotFoundError, TunnelError: If the SSH tunnel fails
            DatabaseConnectionError: If MySQL cannot be reached
        """
        with self._host_lock(host_name):
            with self._lock:
                entry = self._entries.get(host_name)

            if entry is not None:
                if entry.adapter.ping():
                    log_pool_operation(host_name, "reuse", self._established_count())
                    return entry.adapter
                logger.warning(f"Connection to host '{host_name}' failed its health probe; reconnecting")
                self._discard(host_name)
                log_pool_operation(host_name, "probe_failed", self._established_count())

            return self._establish(host_name)

    @contextmanager
    def connection(self, host_name: str) -> Iterator[BaseAdapter]:
        """Acquire the host's connection and hold its lock while in use."""
        with self._host_lock(host_name):
            yield self.acquire(host_name)

    def _establish(self, host_name: str) -> BaseAdapter:
        with self._lock:
            if self._closed:
                raise DatabaseConnectionError(host_name, "connection pool is shut down")
        config = self.registry.get(host_name)
        missing = config.missing_fields()
        if missing:
            raise MissingConfigError(host_name, missing)

        tunnel = self.provisioner.provision(config)
        try:
            if tunnel is not None:
                target_host, target_port = LOOPBACK_HOST, tunnel.local_port
            else:
                if not config.host:
                    raise MissingConfigError(host_name, ["host"])
                target_host, target_port = config.host, config.port or DEFAULT_MYSQL_PORT

            adapter = self.adapter_factory(config, target_host, target_port, via_tunnel=tunnel is not None)
            adapter.connect()
            if not adapter.ping():
                self._close_quietly(host_name, adapter, None)
                raise DatabaseConnectionError(host_name, "health probe failed right after connecting")
        except Exception:
            if tunnel is not None:
                self._close_quietly(host_name, None, tunnel)
            raise

        with self._lock:
            closed = self._closed
            if not closed:
                self._entries[host_name] = ConnectionEntry(config=config, adapter=adapter, tunnel=tunnel)
            established = len(self._entries)
        if closed:
            # release_all ran while this host was being established
            self._close_quietly(host_name, adapter, tunnel)
            raise DatabaseConnectionError(host_name, "connection pool is shut down")
        log_pool_operation(host_name, "store", established)
        return adapter

    def _discard(self, host_name: str) -> None:
        with self._lock:
            entry = self._entries.pop(host_name, None)
        if entry is not None:
            self._close_quietly(host_name, entry.adapter, entry.tunnel)

    def _close_quietly(
        self,
        host_name: str,
        adapter: Optional[BaseAdapter],
        tunnel: Optional[TunnelHandle],
    ) -> None:
        # Connection first, then the tunnel it runs through
        if adapter is not None:
            try:
                adapter.close()
            except Exception as e:
                logger.warning(f"Error closing connection for host '{host_name}': {e}")
        if tunnel is not None:
            try:
                tunnel.close()
            except Exception as e:
                logger.warning(f"Error closing SSH tunnel for host '{host_name}': {e}")

    def release(self, host_name: str) -> None:
        """Close the host's connection and tunnel. Never raises."""
        with self._host_lock(host_name):
            self._discard(host_name)
        log_pool_operation(host_name, "release", self._established_count())

    def release_all(self) -> None:
        """Close every connection and tunnel and stop storing new ones. Never raises.

        Hosts come from the lock map rather than the entries, so a host still
        being established is waited for; once its lock is free the closed
        flag has already made ``_establish`` tear down what it opened.
        """
        with self._lock:
            self._closed = True
            host_names = list(self._host_locks)
        for host_name in host_names:
            self.release(host_name)

    def _established_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def is_established(self, host_name: str) -> bool:
        with self._lock:
            return host_name in self._entries

    def established_hosts(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)
