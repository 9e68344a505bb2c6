import pytest
import yaml

from k3pi.modules.k3os.configuration import url_host
from k3pi.modules.k3os.errors import InputError
from k3pi.modules.k3os.models import HostnameSpec, Node, NodeRole
from k3pi.modules.k3os.targets import (
    generate_hostnames,
    make_targets,
    resolve_server_ip,
    select_server_and_agents,
)


def test_select_server_by_hostname(nodes):
    server, agents = select_server_and_agents(nodes, "s1")
    assert server is nodes[0]
    assert agents == [nodes[1], nodes[2]]


def test_select_server_by_address(nodes):
    server, agents = select_server_and_agents(nodes, "10.0.0.2")
    assert server is nodes[1]
    assert agents == [nodes[0], nodes[2]]


@pytest.mark.parametrize("server_id", ["", "10.9.9.9", "nope"])
def test_no_matching_server_makes_everything_an_agent(nodes, server_id):
    server, agents = select_server_and_agents(nodes, server_id)
    assert server is None
    assert agents == nodes


def test_empty_identifier_does_not_match_node_without_hostname():
    node = Node(address="10.0.0.5", hostname="")
    server, agents = select_server_and_agents([node], "")
    assert server is None
    assert agents == [node]


def test_generate_hostnames_from_prefix(nodes):
    generate_hostnames(nodes, HostnameSpec(prefix="pi"))
    assert [n.hostname for n in nodes] == ["pi-1", "pi-2", "pi-3"]


def test_generated_hostnames_are_distinct():
    many = [Node(address=f"10.0.1.{i}") for i in range(1, 30)]
    generate_hostnames(many, HostnameSpec(prefix="k3os", pattern="{prefix}{index:02d}"))
    names = [n.hostname for n in many]
    assert len(set(names)) == len(names)
    assert names[0] == "k3os01"


def test_generate_hostnames_without_spec_only_fills_missing():
    kept = Node(address="10.0.0.1", hostname="keep-me")
    missing = Node(address="10.0.0.2")
    generate_hostnames([kept, missing], None)
    assert kept.hostname == "keep-me"
    assert missing.hostname == "k3os-2"


def test_resolve_server_ip_prefers_server_node(nodes):
    assert resolve_server_ip(nodes[0], "s1") == "10.0.0.1"


def test_resolve_server_ip_accepts_external_address():
    assert resolve_server_ip(None, "192.168.1.10") == "192.168.1.10"


def test_resolve_server_ip_rejects_non_ip():
    with pytest.raises(InputError, match="not a valid IP address"):
        resolve_server_ip(None, "some-host")


def test_make_targets_assigns_roles_and_server_ip(nodes):
    server, agents = make_targets(nodes[0], nodes[1:], ["ssh-rsa AAAA"], "secret", "10.0.0.1")

    assert server.role == NodeRole.SERVER
    assert server.server_ip is None
    assert [a.role for a in agents] == [NodeRole.AGENT, NodeRole.AGENT]
    assert all(a.server_ip == "10.0.0.1" for a in agents)

    server_config = yaml.safe_load(server.config)
    assert server_config["hostname"] == "s1"
    assert server_config["ssh_authorized_keys"] == ["ssh-rsa AAAA"]
    assert server_config["k3os"]["k3s_args"] == ["server"]

    agent_config = yaml.safe_load(agents[0].config)
    assert agent_config["k3os"]["server_url"] == "https://10.0.0.1:6443"
    assert agent_config["k3os"]["token"] == "secret"
    assert agent_config["k3os"]["k3s_args"] == ["agent"]


def test_image_filename_normalises_arch():
    server, _ = make_targets(Node(address="10.0.0.1", hostname="s", arch="aarch64"), [], [], "", "10.0.0.1")
    assert server.image_filename("k3os-rootfs-{arch}.tar.gz") == "k3os-rootfs-arm64.tar.gz"


def test_unknown_arch_is_rejected():
    with pytest.raises(ValueError, match="Unsupported architecture"):
        Node(address="10.0.0.1", arch="sparc").get_arch()


def test_ipv6_server_url_is_bracketed():
    agent = Node(address="fd00::11", hostname="a1")

    _, agents = make_targets(None, [agent], ["ssh-rsa AAAA"], "secret", resolve_server_ip(None, "fd00::10"))

    agent_config = yaml.safe_load(agents[0].config)
    assert agent_config["k3os"]["server_url"] == "https://[fd00::10]:6443"


@pytest.mark.parametrize("address, host", [
    ("10.0.0.1", "10.0.0.1"),
    ("fd00::10", "[fd00::10]"),
    ("node-1.local", "node-1.local"),
])
def test_url_host(address, host):
    assert url_host(address) == host
