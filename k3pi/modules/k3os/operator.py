"""Remote command execution against a single node.

A ``CommandOperator`` runs shell commands, in the order the caller issues
them, over one already open connection. ``SSHCommandOperator`` runs them for
real; ``DryRunCommandOperator`` only records and logs them.
"""

import logging
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import paramiko

from .errors import RemoteCommandError

logger = logging.getLogger("k3pi.operator")


@dataclass
class CommandResult:
    """Outcome of one remote command."""
    command: str
    exit_status: int
    output: str = ''

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class CommandOperator(ABC):
    """Runs commands on one node."""

    @abstractmethod
    def execute(self, command: str, check: bool = True) -> CommandResult:
        """Run ``command`` and return its result.

        Raises:
            RemoteCommandError: If the transport fails, or if ``check`` is set
                and the command exits non-zero
        """


class SSHCommandOperator(CommandOperator):
    """Executes commands over an open paramiko connection."""

    def __init__(self, client: paramiko.SSHClient, address: str, timeout: Optional[float] = None):
        self.client = client
        self.address = address
        self.timeout = timeout

    def execute(self, command: str, check: bool = True) -> CommandResult:
        logger.debug("[%s] $ %s", self.address, command)
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise RemoteCommandError(command, output=f"no active connection to {self.address}")
        try:
            channel = transport.open_session(timeout=self.timeout)
            try:
                channel.settimeout(self.timeout)
                # Must be set before the command starts or early stderr is lost.
                channel.set_combine_stderr(True)
                channel.exec_command(command)
                output = channel.makefile('rb').read().decode('utf-8', 'replace')
                exit_status = channel.recv_exit_status()
            finally:
                channel.close()
        except (paramiko.SSHException, socket.error, EOFError) as e:
            raise RemoteCommandError(command, output=f"{type(e).__name__}: {e}") from e

        result = CommandResult(command=command, exit_status=exit_status, output=output)
        log_level = logging.DEBUG if result.ok else logging.WARNING
        logger.log(log_level, "[%s] Command exited with status %d: %s", self.address, exit_status, command)

        if check and not result.ok:
            raise RemoteCommandError(command, exit_status, output)
        return result


class DryRunCommandOperator(CommandOperator):
    """Records commands without touching the network. Every command succeeds."""

    def __init__(self, address: str):
        self.address = address
        self.commands: List[str] = []

    def execute(self, command: str, check: bool = True) -> CommandResult:
        logger.info("[DRY RUN] Would execute on %s: %s", self.address, command)
        self.commands.append(command)
        return CommandResult(command=command, exit_status=0)
