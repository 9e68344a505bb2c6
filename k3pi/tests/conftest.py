import threading

import pytest

from k3pi.config import InstallerConfig
from k3pi.modules.k3os.errors import NodeConnectionError, RemoteCommandError
from k3pi.modules.k3os.models import Node, NodeRole
from k3pi.modules.k3os.operator import CommandOperator, CommandResult
from k3pi.modules.k3os.session import Connector, Session
from k3pi.modules.k3os.targets import make_target
from k3pi.modules.k3os.transfer import DryRunFileTransfer


class ScriptedOperator(CommandOperator):
    """Records commands; commands containing a failure marker exit non-zero."""

    def __init__(self, failures=None, output=''):
        self.failures = failures or {}
        self.output = output
        self.commands = []

    def execute(self, command, check=True):
        self.commands.append(command)
        for marker, status in self.failures.items():
            if marker in command:
                if check:
                    raise RemoteCommandError(command, status, "boom")
                return CommandResult(command, status, "boom")
        return CommandResult(command, 0, self.output)


class RecordingSession(Session):
    def __init__(self, connector, address, operator):
        super().__init__(address, DryRunFileTransfer(address), operator)
        self.connector = connector
        self.closed = False

    def close(self):
        self.closed = True
        self.connector.record(("close", self.address))


class RecordingConnector(Connector):
    """Connector fake.

    ``failures`` maps an address to ``{command marker: exit status}``;
    addresses in ``unreachable`` fail to connect.
    """

    def __init__(self, failures=None, unreachable=(), output=''):
        self.failures = failures or {}
        self.unreachable = set(unreachable)
        self.output = output
        self.sessions = []
        self.events = []
        self._lock = threading.Lock()

    def record(self, event):
        with self._lock:
            self.events.append(event)

    def open(self, node):
        if node.address in self.unreachable:
            raise NodeConnectionError(node.address, "connection refused")
        operator = ScriptedOperator(self.failures.get(node.address), self.output)
        session = RecordingSession(self, node.address, operator)
        with self._lock:
            self.sessions.append(session)
        self.record(("open", node.address))
        return session

    def sessions_for(self, address):
        return [s for s in self.sessions if s.address == address]


@pytest.fixture
def config():
    return InstallerConfig()


@pytest.fixture
def connector():
    return RecordingConnector()


@pytest.fixture
def nodes():
    return [
        Node(address="10.0.0.1", hostname="s1", arch="arm64"),
        Node(address="10.0.0.2", hostname="a1", arch="arm64"),
        Node(address="10.0.0.3", hostname="a2", arch="arm"),
    ]


@pytest.fixture
def agent_target():
    def factory(address="10.0.0.2", arch="arm64"):
        node = Node(address=address, hostname=f"node-{address}", arch=arch)
        return make_target(node, NodeRole.AGENT, ["ssh-rsa AAAA"], token="secret", server_ip="10.0.0.1")
    return factory
