"""k3OS ``config.yaml`` generation."""

import ipaddress
import logging
from typing import Any, Dict, Optional, Sequence

import yaml

from .models import Node, NodeRole

logger = logging.getLogger("k3pi.configuration")

K3S_API_PORT = 6443


def url_host(address: str) -> str:
    """Host part of a URL for ``address``; IPv6 literals get brackets."""
    try:
        if ipaddress.ip_address(address).version == 6:
            return f"[{address}]"
    except ValueError:
        pass
    return address


def generate_node_config(
    node: Node,
    role: NodeRole,
    ssh_keys: Sequence[str],
    token: str = '',
    server_ip: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the k3OS configuration for a node.

    Args:
        node: Node being installed
        role: Role of the node in the cluster
        ssh_keys: Public keys added to the rancher user
        token: Cluster secret (server) or join token (agent)
        server_ip: Address of the server, required for agents

    Returns:
        dict: The configuration document
    """
    k3os: Dict[str, Any] = {}
    if token:
        k3os['token'] = token

    if role == NodeRole.AGENT:
        if not server_ip:
            raise ValueError(f"Agent {node.address} needs a server address")
        k3os['server_url'] = f"https://{url_host(server_ip)}:{K3S_API_PORT}"
        k3os['k3s_args'] = ['agent']
    else:
        k3os['k3s_args'] = ['server']

    config = {
        'hostname': node.hostname,
        'ssh_authorized_keys': list(ssh_keys),
        'k3os': k3os,
    }
    logger.debug("Generated %s config for %s", role.value, node.address)
    return config


def render_node_config(config: Dict[str, Any]) -> bytes:
    """Serialise a configuration document to the bytes copied to the node."""
    return yaml.safe_dump(config, default_flow_style=False, sort_keys=False).encode('utf-8')
