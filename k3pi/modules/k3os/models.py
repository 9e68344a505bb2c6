"""Data models for the k3OS installer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

# Architecture tags as they appear in inventories, mapped to the tag used in
# k3OS release artifact names.
ARCH_ALIASES: Dict[str, str] = {
    'arm64': 'arm64',
    'aarch64': 'arm64',
    'arm': 'arm',
    'armv7': 'arm',
    'armv7l': 'arm',
    'armhf': 'arm',
    'amd64': 'amd64',
    'x86_64': 'amd64',
}


class NodeRole(str, Enum):
    """Node roles in a k3s cluster."""
    SERVER = 'server'
    AGENT = 'agent'


@dataclass
class Node:
    """A machine from the inventory.

    ``hostname`` may be rewritten once by hostname generation, before any
    install work starts. Everything else is read-only.
    """
    address: str
    arch: str = 'arm64'
    user: str = 'rancher'
    hostname: Optional[str] = None

    def get_arch(self) -> str:
        """Return the release artifact architecture tag for this node."""
        try:
            return ARCH_ALIASES[self.arch.lower()]
        except KeyError:
            raise ValueError(f"Unsupported architecture '{self.arch}' for node {self.address}")

    def info(self) -> str:
        return f"{self.hostname} ({self.address})"


@dataclass(frozen=True)
class Target:
    """A node bound to its role and its generated k3OS configuration."""
    node: Node
    role: NodeRole
    config: bytes
    ssh_authorized_keys: Tuple[str, ...] = ()
    server_ip: Optional[str] = None

    @property
    def is_server(self) -> bool:
        return self.role == NodeRole.SERVER

    def image_filename(self, template: str) -> str:
        """Name of the rootfs archive this target needs, e.g. ``k3os-rootfs-arm64.tar.gz``."""
        return template.format(arch=self.node.get_arch())

    def __str__(self) -> str:
        return f"{self.role.value} {self.node.info()}"


@dataclass
class InstallTask:
    """Everything the orchestration phase needs, built before it starts."""
    dry_run: bool = False
    server: Optional[Target] = None
    agents: List[Target] = field(default_factory=list)

    @property
    def targets(self) -> List[Target]:
        """Server first (when present), then agents in inventory order."""
        targets = [self.server] if self.server is not None else []
        return targets + list(self.agents)


@dataclass
class HostnameSpec:
    """Naming scheme for generated hostnames, indexed from 1."""
    prefix: str = 'k3os'
    pattern: str = '{prefix}-{index}'

    def get_hostname(self, index: int) -> str:
        return self.pattern.format(prefix=self.prefix, index=index)


@dataclass
class InstallArgs:
    """Arguments for a full install run."""
    nodes: List[Node]
    ssh_keys: List[str]
    token: str = ''
    server_id: str = ''
    hostname_spec: Optional[HostnameSpec] = None
    dry_run: bool = False
    confirmed: bool = False
