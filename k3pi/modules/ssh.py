"""
SSH client setup for talking to nodes with paramiko.
"""
import logging
import os
import socket
from dataclasses import dataclass
from typing import List, Optional

import paramiko

from k3pi.modules.k3os.errors import InputError, NodeConnectionError

logger = logging.getLogger("k3pi.ssh")

KEY_TYPES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


@dataclass
class Settings:
    """How to authenticate against a node."""
    user: str
    key_path: Optional[str] = None
    port: int = 22
    timeout: float = 10


def load_private_key(key_path: str) -> paramiko.PKey:
    """Load a private key, trying each supported key type in turn.

    Args:
        key_path: Path to the private key file (``~`` is expanded)

    Returns:
        paramiko.PKey: The loaded key

    Raises:
        NodeConnectionError: If the file is missing or no key type can read it
    """
    path = os.path.expanduser(key_path)
    if not os.path.exists(path):
        raise NodeConnectionError("localhost", f"SSH key {path} not found")

    for key_cls in KEY_TYPES:
        try:
            return key_cls.from_private_key_file(path)
        except paramiko.SSHException:
            continue
    raise NodeConnectionError("localhost", f"unsupported or encrypted SSH key {path}")


def connect(address: str, settings: Settings) -> paramiko.SSHClient:
    """Open an authenticated SSH connection to ``address``.

    The SSH agent is tried as well as the configured key. A key that cannot
    be loaded here, such as one protected by a passphrase, is left to the agent.

    Raises:
        NodeConnectionError: On DNS, TCP, or authentication failure
    """
    pkey = None
    if settings.key_path and os.path.exists(os.path.expanduser(settings.key_path)):
        try:
            pkey = load_private_key(settings.key_path)
        except NodeConnectionError as e:
            logger.debug("Falling back to the SSH agent for %s: %s", address, e)

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    logger.debug("Connecting to %s@%s:%d", settings.user, address, settings.port)
    try:
        client.connect(
            hostname=address,
            port=settings.port,
            username=settings.user,
            pkey=pkey,
            timeout=settings.timeout,
            allow_agent=True,
            look_for_keys=pkey is None,
        )
    except paramiko.AuthenticationException as e:
        client.close()
        raise NodeConnectionError(address, f"authentication failed for {settings.user}: {e}") from e
    except (paramiko.SSHException, socket.error) as e:
        client.close()
        raise NodeConnectionError(address, f"failed to connect: {e}") from e

    return client


def read_authorized_key(path: str) -> str:
    """Read a public key file and keep only ``<type> <base64>``."""
    path = os.path.expanduser(path)
    try:
        with open(path, 'r') as f:
            fields = f.read().strip().split()
    except OSError as e:
        raise InputError(f"failed to read default ssh public key: {path}: {e}") from e

    if len(fields) < 2:
        raise InputError(f"invalid ssh public key in {path}")
    return f"{fields[0]} {fields[1]}"


def resolve_authorized_keys(keys: List[str], default_key: str, key_file: Optional[str] = None) -> List[str]:
    """Return the keys to install on nodes.

    When the only key given is the default public key path, the key is read
    from ``key_file`` (or that default path).
    """
    if not keys:
        raise InputError("at least one ssh key is required")
    if len(keys) == 1 and keys[0] == default_key:
        return [read_authorized_key(key_file or default_key)]
    return list(keys)
