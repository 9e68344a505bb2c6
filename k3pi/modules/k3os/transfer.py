"""File transfer to a node.

A transfer session can carry exactly one file. The image and the config are
therefore sent over two separately opened connections; the second connection
is then reused for command execution. Sending a second file over a session
that already carried one raises ``RuntimeError``.

This mirrors a limitation seen with the copy transport on k3OS hosts and has
not been retested against current images.
"""

import io
import logging
import os
import socket
from abc import ABC, abstractmethod
from typing import List, Tuple, Union

import paramiko

from .errors import NodeConnectionError

logger = logging.getLogger("k3pi.transfer")

Source = Union[str, os.PathLike, bytes]


class FileTransfer(ABC):
    """Sends one file to a node's home directory."""

    def __init__(self, address: str):
        self.address = address
        self._used = False

    def send(self, source: Source, remote_name: str, mode: int) -> None:
        """Copy ``source`` (a local path or raw bytes) to ``~/remote_name``.

        Raises:
            NodeConnectionError: If the copy fails
            RuntimeError: If this session already carried a file
        """
        if self._used:
            raise RuntimeError(
                f"transfer session to {self.address} already used, open a new session per file"
            )
        self._used = True
        self._send(source, remote_name, mode)

    @abstractmethod
    def _send(self, source: Source, remote_name: str, mode: int) -> None:
        pass


class SFTPFileTransfer(FileTransfer):
    """Copies files over an open paramiko connection."""

    def __init__(self, client: paramiko.SSHClient, address: str):
        super().__init__(address)
        self.client = client

    def _send(self, source: Source, remote_name: str, mode: int) -> None:
        try:
            sftp = self.client.open_sftp()
            try:
                if isinstance(source, bytes):
                    size = len(source)
                    sftp.putfo(io.BytesIO(source), remote_name)
                else:
                    size = os.path.getsize(source)
                    with open(source, 'rb') as f:
                        sftp.putfo(f, remote_name)
                sftp.chmod(remote_name, mode)
            finally:
                sftp.close()
        except (paramiko.SSHException, socket.error, OSError) as e:
            raise NodeConnectionError(self.address, f"failed to copy {remote_name}: {e}") from e

        logger.debug("[%s] Copied %s (%d bytes, mode %o)", self.address, remote_name, size, mode)


class DryRunFileTransfer(FileTransfer):
    """Records transfers without touching the network."""

    def __init__(self, address: str):
        super().__init__(address)
        self.sent: List[Tuple[str, int]] = []

    def _send(self, source: Source, remote_name: str, mode: int) -> None:
        logger.info("[DRY RUN] Would copy %s to %s:~/%s (mode %o)",
                    '<generated>' if isinstance(source, bytes) else source,
                    self.address, remote_name, mode)
        self.sent.append((remote_name, mode))
