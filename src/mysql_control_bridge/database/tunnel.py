"""SSH tunnel provisioning for hosts only reachable through a bastion."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import paramiko
import sshtunnel
from sshtunnel import SSHTunnelForwarder

from ..constants import DEFAULT_MYSQL_PORT, LOOPBACK_HOST, SSH_CONNECT_TIMEOUT
from .errors import KeyFileNotFoundError, TunnelError
from .hosts import HostConfig
from .logging import log_tunnel

logger = logging.getLogger(__name__)

# Key types tried in order when reading a private key file
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


@dataclass
class TunnelHandle:
    """A live local listener forwarding to a remote MySQL port over SSH."""

    host_name: str
    local_port: int
    remote_host: str
    remote_port: int
    ssh_target: str
    forwarder: Any = field(repr=False)
    _closed: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the forwarder. Safe to call more than once; stops it only once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.forwarder.stop()
        except Exception as e:
            log_tunnel(self.host_name, "close_failed", self.ssh_target, self.local_port, error=str(e))
            raise
        log_tunnel(self.host_name, "close", self.ssh_target, self.local_port)


def resolve_key_path(path: str) -> Path:
    return Path(path).expanduser().resolve()


def load_private_key(path: Path, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Read an OpenSSH/PEM private key, trying each supported key type.

    Args:
        path: Key file path
        passphrase: Optional passphrase protecting the key

    Returns:
        Loaded paramiko key

    Raises:
        paramiko.SSHException: If no key type can read the file
    """
    errors = []
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key_file(str(path), password=passphrase)
        except paramiko.PasswordRequiredException:
            raise
        except (paramiko.SSHException, ValueError) as e:
            errors.append(f"{key_class.__name__}: {e}")
    raise paramiko.SSHException(f"Unsupported or unreadable private key {path} ({'; '.join(errors)})")


class TunnelProvisioner:
    """Opens SSH forwarders for hosts that carry SSH parameters."""

    def __init__(self, connect_timeout: float = SSH_CONNECT_TIMEOUT):
        self.connect_timeout = connect_timeout

    def provision(self, config: HostConfig) -> Optional[TunnelHandle]:
        """Open a fresh tunnel for the host, or return None for direct connect.

        Args:
            config: Host parameters

        Returns:
            TunnelHandle bound to an ephemeral loopback port, or None when
            the SSH address, username or key path is missing

        Raises:
            KeyFileNotFoundError: If the key file does not exist
            TunnelError: If the key cannot be read or the session cannot be opened
        """
        if not config.ssh_configured:
            if config.ssh_host or config.ssh_user or config.ssh_key_path:
                logger.info(f"Host '{config.name}': incomplete SSH settings, connecting directly")
            return None

        key_path = resolve_key_path(config.ssh_key_path)
        if not key_path.is_file():
            raise KeyFileNotFoundError(config.name, str(key_path))

        ssh_target = f"{config.ssh_user}@{config.ssh_host}:{config.ssh_port}"
        remote_host = config.host or LOOPBACK_HOST
        remote_port = config.port or DEFAULT_MYSQL_PORT

        try:
            pkey = load_private_key(key_path, config.ssh_passphrase)
        except (OSError, paramiko.SSHException) as e:
            log_tunnel(config.name, "open_failed", ssh_target, error=str(e))
            raise TunnelError(config.name, e) from e

        # sshtunnel reads its socket timeout from module state
        sshtunnel.SSH_TIMEOUT = self.connect_timeout

        forwarder = None
        try:
            forwarder = SSHTunnelForwarder(
                (config.ssh_host, config.ssh_port),
                ssh_username=config.ssh_user,
                ssh_pkey=pkey,
                allow_agent=False,
                host_pkey_directories=[],
                remote_bind_address=(remote_host, remote_port),
                local_bind_address=(LOOPBACK_HOST, 0),
                logger=logging.getLogger(f"{__name__}.sshtunnel"),
            )
            forwarder.start()
            if not forwarder.is_active:
                raise TunnelError(config.name, f"session to {ssh_target} did not become active")
            local_port = forwarder.local_bind_port
        except Exception as e:
            if forwarder is not None:
                try:
                    forwarder.stop()
                except Exception as stop_error:
                    logger.warning(f"Error stopping partial tunnel for '{config.name}': {stop_error}")
            log_tunnel(config.name, "open_failed", ssh_target, error=str(e))
            if isinstance(e, TunnelError):
                raise
            raise TunnelError(config.name, e) from e

        log_tunnel(config.name, "open", ssh_target, local_port)
        return TunnelHandle(
            host_name=config.name,
            local_port=local_port,
            remote_host=remote_host,
            remote_port=remote_port,
            ssh_target=ssh_target,
            forwarder=forwarder,
        )
