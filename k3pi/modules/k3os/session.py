"""Connections to nodes, live or dry-run.

A ``Connector`` is picked once per run by ``make_connector`` and opens
``Session`` objects. Each session is one logical connection that offers a
single file transfer and any number of commands.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import paramiko

from k3pi.config import SSHConfig
from k3pi.modules import ssh

from .models import Node
from .operator import CommandOperator, CommandResult, DryRunCommandOperator, SSHCommandOperator
from .transfer import DryRunFileTransfer, FileTransfer, SFTPFileTransfer, Source

logger = logging.getLogger("k3pi.session")


class Session:
    """One connection to a node: a single-use file transfer plus a command operator."""

    def __init__(self, address: str, transfer: FileTransfer, operator: CommandOperator):
        self.address = address
        self.transfer = transfer
        self.operator = operator

    def send(self, source: Source, remote_name: str, mode: int) -> None:
        self.transfer.send(source, remote_name, mode)

    def execute(self, command: str, check: bool = True) -> CommandResult:
        return self.operator.execute(command, check=check)

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SSHSession(Session):
    """Session backed by a paramiko client."""

    def __init__(self, client: paramiko.SSHClient, address: str, command_timeout: float):
        super().__init__(
            address,
            SFTPFileTransfer(client, address),
            SSHCommandOperator(client, address, timeout=command_timeout),
        )
        self.client = client

    def close(self) -> None:
        self.client.close()


class Connector(ABC):
    """Opens sessions to nodes."""

    @abstractmethod
    def open(self, node: Node) -> Session:
        """Open a new session to ``node``.

        Raises:
            NodeConnectionError: If the node cannot be reached or authenticated
        """


class SSHConnector(Connector):
    """Opens real SSH sessions."""

    def __init__(self, config: SSHConfig):
        self.config = config

    def settings_for(self, node: Node) -> ssh.Settings:
        return ssh.Settings(
            user=node.user,
            key_path=self.config.key_path,
            port=self.config.port,
            timeout=self.config.connect_timeout,
        )

    def open(self, node: Node) -> Session:
        client = ssh.connect(node.address, self.settings_for(node))
        return SSHSession(client, node.address, self.config.command_timeout)


class DryRunConnector(Connector):
    """Hands out sessions that only record what would have happened."""

    def __init__(self):
        self.sessions: List[Session] = []

    def open(self, node: Node) -> Session:
        session = Session(
            node.address,
            DryRunFileTransfer(node.address),
            DryRunCommandOperator(node.address),
        )
        self.sessions.append(session)
        return session


def make_connector(dry_run: bool, config: SSHConfig) -> Connector:
    """Pick the live or dry-run connector for a run."""
    if dry_run:
        logger.info("Dry run: no connections will be opened")
        return DryRunConnector()
    return SSHConnector(config)
