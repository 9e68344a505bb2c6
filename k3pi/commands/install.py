"""
The ``k3pi install`` command.
"""
import sys
from pathlib import Path
from typing import List, Optional

import typer

from k3pi.config import get_config
from k3pi.modules import inventory, ssh
from k3pi.modules.k3os import HostnameSpec, InstallArgs, InstallTask, K3piError, install
from k3pi.modules.k3os.errors import InputError

DEFAULT_SSH_AUTHORIZED_KEY = "~/.ssh/id_rsa.pub"


def stdin_is_piped() -> bool:
    return not sys.stdin.isatty()


def read_inventory(filename: Optional[Path]) -> str:
    """Inventory text from ``--filename`` or, failing that, piped stdin."""
    if filename is not None:
        try:
            return filename.read_text()
        except OSError as e:
            raise InputError(f"error reading input file: {e}") from e
    if stdin_is_piped():
        return sys.stdin.read()
    raise InputError("must specify --filename|-f")


def make_confirm(piped: bool):
    """Build the overwrite prompt used when ``--yes`` is not given."""
    def confirm(task: InstallTask) -> bool:
        if piped:
            raise InputError("install needs to be confirmed (--yes|-y)")
        return typer.confirm("Overwrite all nodes?", default=False)
    return confirm


def install_cmd(
    filename: Optional[Path] = typer.Option(None, "--filename", "-f", help="YAML file with all nodes"),
    server: str = typer.Option("", "--server", "-s", help="ip address or hostname of the server node"),
    token: str = typer.Option("", "--token", "-t", help="token or cluster secret for joining a server"),
    ssh_keys: List[str] = typer.Option(
        [DEFAULT_SSH_AUTHORIZED_KEY],
        "--ssh-key",
        "-k",
        help="ssh authorized key that should be added to the rancher user",
    ),
    hostname_prefix: Optional[str] = typer.Option(
        None, "--hostname-prefix", help="rename nodes to <prefix>-1, <prefix>-2, ... in file order"
    ),
    kubeconfig_dir: Path = typer.Option(Path("."), "--kubeconfig-dir", help="where to save the server kubeconfig"),
    dry_run: bool = typer.Option(False, "--dry-run", help="if true will print the install commands but never run them"),
    yes: bool = typer.Option(False, "--yes", "-y", help="do not ask for confirmation"),
):
    """
    Installs k3OS on selected nodes.

    Every node in the file is overwritten. The node matching --server becomes
    the k3s server, all others join as agents.
    """
    config = get_config()
    try:
        nodes = inventory.parse_inventory(read_inventory(filename))
        args = InstallArgs(
            nodes=nodes,
            ssh_keys=ssh.resolve_authorized_keys(
                list(ssh_keys), DEFAULT_SSH_AUTHORIZED_KEY, key_file=config.ssh.authorized_key
            ),
            token=token,
            server_id=server,
            hostname_spec=HostnameSpec(prefix=hostname_prefix) if hostname_prefix else None,
            dry_run=dry_run,
            confirmed=yes,
        )
        report = install(
            args,
            config=config,
            confirm=make_confirm(piped=stdin_is_piped()),
            kubeconfig_dir=kubeconfig_dir,
        )
    except K3piError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if report.aborted:
        typer.echo("Aborted, no nodes were changed")
        return

    typer.echo(f"✅ Installed k3OS on {len(report.results)} node(s)")
    if report.kubeconfig is not None:
        typer.echo(f"Kubeconfig saved to: {report.kubeconfig}")
