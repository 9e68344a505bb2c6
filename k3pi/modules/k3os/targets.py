"""Server/agent selection and target construction."""

import ipaddress
import logging
from typing import List, Optional, Sequence, Tuple

from .configuration import generate_node_config, render_node_config
from .errors import InputError
from .models import HostnameSpec, Node, NodeRole, Target

logger = logging.getLogger("k3pi.targets")

DEFAULT_HOSTNAME_SPEC = HostnameSpec()


def generate_hostnames(nodes: Sequence[Node], spec: Optional[HostnameSpec]) -> None:
    """Assign hostnames in inventory order.

    With a spec every node is renamed. Without one, only nodes that have no
    hostname get a default name.
    """
    for index, node in enumerate(nodes, start=1):
        if spec is not None:
            node.hostname = spec.get_hostname(index)
        elif not node.hostname:
            node.hostname = DEFAULT_HOSTNAME_SPEC.get_hostname(index)


def select_server_and_agents(nodes: Sequence[Node], server_id: str) -> Tuple[Optional[Node], List[Node]]:
    """Partition the inventory into the server node and the agent nodes.

    A node whose hostname or address equals ``server_id`` becomes the server;
    all other nodes keep their order as agents.
    """
    server_node = None
    agent_nodes = []

    for node in nodes:
        if server_id and server_node is None and server_id in (node.hostname, node.address):
            server_node = node
        else:
            agent_nodes.append(node)

    return server_node, agent_nodes


def resolve_server_ip(server_node: Optional[Node], server_id: str) -> str:
    """Address the agents join.

    When no inventory node matched, ``server_id`` is taken as the address of
    an already running server. It is not probed, only checked to be an IP.
    """
    if server_node is not None:
        return server_node.address
    try:
        return str(ipaddress.ip_address(server_id))
    except ValueError:
        raise InputError(
            f"no server node found and --server '{server_id}' is not a valid IP address"
        )


def make_target(
    node: Node,
    role: NodeRole,
    ssh_keys: Sequence[str],
    token: str = '',
    server_ip: Optional[str] = None,
) -> Target:
    """Bind a node to its role and render its configuration."""
    config = generate_node_config(node, role, ssh_keys, token=token, server_ip=server_ip)
    return Target(
        node=node,
        role=role,
        config=render_node_config(config),
        ssh_authorized_keys=tuple(ssh_keys),
        server_ip=server_ip if role == NodeRole.AGENT else None,
    )


def make_targets(
    server_node: Optional[Node],
    agent_nodes: Sequence[Node],
    ssh_keys: Sequence[str],
    token: str,
    server_ip: str,
) -> Tuple[Optional[Target], List[Target]]:
    """Build the server target (if any) and one agent target per agent node."""
    server = None
    if server_node is not None:
        server = make_target(server_node, NodeRole.SERVER, ssh_keys, token=token)
    agents = [
        make_target(node, NodeRole.AGENT, ssh_keys, token=token, server_ip=server_ip)
        for node in agent_nodes
    ]
    return server, agents
