"""k3OS installation onto remote nodes.

The package is organised as:

- models: Nodes, targets and install arguments
- targets: Server/agent selection and hostname generation
- configuration: k3OS config.yaml generation
- resources: Image download and checksum verification
- operator / transfer / session: Remote commands and file copies, live or dry-run
- installer: The per-node install procedure
- orchestrator: Parallel install across nodes
- readiness: Server readiness and kubeconfig retrieval
- install: The full install run
"""

from .errors import (
    CredentialRetrievalError,
    InputError,
    InstallError,
    K3piError,
    NodeConnectionError,
    ReadinessTimeoutError,
    RemoteCommandError,
    UserAbortError,
    VerificationError,
)
from .install import InstallReport, build_task, install
from .installer import InstallState, InstallUnit
from .models import HostnameSpec, InstallArgs, InstallTask, Node, NodeRole, Target
from .orchestrator import InstallResult, Orchestrator
from .readiness import ReadinessPoller
from .resources import ResourceProvisioner
from .session import Connector, DryRunConnector, SSHConnector, make_connector

__all__ = [
    'install',
    'build_task',
    'InstallReport',
    'InstallUnit',
    'InstallState',
    'InstallResult',
    'Orchestrator',
    'ReadinessPoller',
    'ResourceProvisioner',
    'Connector',
    'DryRunConnector',
    'SSHConnector',
    'make_connector',
    'Node',
    'NodeRole',
    'Target',
    'InstallTask',
    'InstallArgs',
    'HostnameSpec',
    'K3piError',
    'InputError',
    'VerificationError',
    'NodeConnectionError',
    'RemoteCommandError',
    'ReadinessTimeoutError',
    'CredentialRetrievalError',
    'UserAbortError',
    'InstallError',
]
