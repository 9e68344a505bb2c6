import paramiko
import pytest

from k3pi.modules import ssh
from k3pi.modules.k3os.errors import InputError, NodeConnectionError


def test_create_ssh_settings():
    settings = ssh.Settings(user="rancher", key_path="", port=22)
    assert settings.port == 22
    assert settings.timeout == 10


def test_load_private_key(tmp_path):
    key_file = tmp_path / "id_rsa"
    paramiko.RSAKey.generate(2048).write_private_key_file(str(key_file))

    key = ssh.load_private_key(str(key_file))

    assert isinstance(key, paramiko.RSAKey)


def test_load_missing_private_key(tmp_path):
    with pytest.raises(NodeConnectionError, match="not found"):
        ssh.load_private_key(str(tmp_path / "missing"))


def test_load_garbage_private_key(tmp_path):
    key_file = tmp_path / "id_rsa"
    key_file.write_text("not a key\n")

    with pytest.raises(NodeConnectionError, match="unsupported"):
        ssh.load_private_key(str(key_file))


def test_connect_failure_is_node_connection_error(monkeypatch):
    def refuse(self, **kwargs):
        raise paramiko.ssh_exception.NoValidConnectionsError({("10.0.0.1", 22): OSError("refused")})

    monkeypatch.setattr(paramiko.SSHClient, "connect", refuse)

    with pytest.raises(NodeConnectionError, match="10.0.0.1"):
        ssh.connect("10.0.0.1", ssh.Settings(user="rancher"))


def test_authentication_failure_is_node_connection_error(monkeypatch):
    def deny(self, **kwargs):
        raise paramiko.AuthenticationException("denied")

    monkeypatch.setattr(paramiko.SSHClient, "connect", deny)

    with pytest.raises(NodeConnectionError, match="authentication failed"):
        ssh.connect("10.0.0.1", ssh.Settings(user="rancher"))


def test_read_authorized_key_drops_comment(tmp_path):
    pub = tmp_path / "id_rsa.pub"
    pub.write_text("ssh-rsa AAAAB3Nza user@host\n")

    assert ssh.read_authorized_key(str(pub)) == "ssh-rsa AAAAB3Nza"


def test_resolve_authorized_keys_reads_default_file(tmp_path):
    pub = tmp_path / "id_rsa.pub"
    pub.write_text("ssh-ed25519 AAAAC3Nz me@laptop\n")

    keys = ssh.resolve_authorized_keys(["~/.ssh/id_rsa.pub"], "~/.ssh/id_rsa.pub", key_file=str(pub))

    assert keys == ["ssh-ed25519 AAAAC3Nz"]


def test_resolve_authorized_keys_keeps_explicit_keys():
    keys = ["ssh-rsa AAAA one", "ssh-rsa BBBB two"]
    assert ssh.resolve_authorized_keys(keys, "~/.ssh/id_rsa.pub") == keys


def test_resolve_authorized_keys_requires_a_key():
    with pytest.raises(InputError, match="at least one ssh key"):
        ssh.resolve_authorized_keys([], "~/.ssh/id_rsa.pub")


def test_encrypted_key_falls_back_to_agent(tmp_path, monkeypatch):
    key_file = tmp_path / "id_rsa"
    paramiko.RSAKey.generate(2048).write_private_key_file(str(key_file), password="secret")
    calls = []

    def accept(self, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(paramiko.SSHClient, "connect", accept)

    client = ssh.connect("10.0.0.1", ssh.Settings(user="rancher", key_path=str(key_file)))

    assert isinstance(client, paramiko.SSHClient)
    (kwargs,) = calls
    assert kwargs["pkey"] is None
    assert kwargs["allow_agent"] is True
    assert kwargs["hostname"] == "10.0.0.1"


def test_readable_key_is_passed_to_paramiko(tmp_path, monkeypatch):
    key_file = tmp_path / "id_rsa"
    paramiko.RSAKey.generate(2048).write_private_key_file(str(key_file))
    calls = []
    monkeypatch.setattr(paramiko.SSHClient, "connect", lambda self, **kwargs: calls.append(kwargs))

    ssh.connect("10.0.0.1", ssh.Settings(user="rancher", key_path=str(key_file)))

    assert isinstance(calls[0]["pkey"], paramiko.RSAKey)
    assert calls[0]["look_for_keys"] is False
