import pytest

from k3pi.modules.inventory import parse_inventory
from k3pi.modules.k3os.errors import InputError


def test_parse_inventory():
    nodes = parse_inventory("""
- hostname: s1
  address: 192.168.1.10
  arch: arm64
  user: rancher
- address: 192.168.1.11
  arch: arm
""")

    assert [n.address for n in nodes] == ["192.168.1.10", "192.168.1.11"]
    assert nodes[0].hostname == "s1"
    assert nodes[1].hostname is None
    assert nodes[1].get_arch() == "arm"
    assert nodes[1].user == "rancher"


@pytest.mark.parametrize("text", ["", "[]", "- arch: arm64\n", "- address: 10.0.0.1\n  arch: mips\n", "{a: [}"])
def test_invalid_inventory(text):
    with pytest.raises(InputError):
        parse_inventory(text)
