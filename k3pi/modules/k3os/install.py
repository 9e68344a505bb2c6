"""Full k3OS install run: select roles, fetch images, install nodes, fetch kubeconfig."""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from k3pi.config import InstallerConfig, get_config

from .errors import InputError, UserAbortError
from .installer import make_install_units
from .models import InstallArgs, InstallTask
from .orchestrator import InstallResult, Orchestrator, check_results
from .readiness import ReadinessPoller, fetch_kubeconfig
from .resources import ResourceProvisioner, resource_directory
from .session import Connector, make_connector
from .targets import generate_hostnames, make_targets, resolve_server_ip, select_server_and_agents

logger = logging.getLogger("k3pi.install")


@dataclass
class InstallReport:
    """What a run did."""
    results: List[InstallResult] = field(default_factory=list)
    kubeconfig: Optional[Path] = None
    aborted: bool = False


def build_task(args: InstallArgs) -> InstallTask:
    """Resolve roles and build every target. Touches no node.

    Raises:
        InputError: If the arguments cannot produce a valid task
    """
    if not args.nodes:
        raise InputError("no nodes to install")

    generate_hostnames(args.nodes, args.hostname_spec)

    server_node, agent_nodes = select_server_and_agents(args.nodes, args.server_id)

    if server_node is not None:
        logger.info("Server:\t%s", server_node.info())
    elif not args.token:
        raise InputError("no server selected and no join token")

    logger.info("Agents:\t%s", ", ".join(node.info() for node in agent_nodes))

    server_ip = resolve_server_ip(server_node, args.server_id)
    server, agents = make_targets(server_node, agent_nodes, args.ssh_keys, args.token, server_ip)
    return InstallTask(dry_run=args.dry_run, server=server, agents=agents)


def install(
    args: InstallArgs,
    config: Optional[InstallerConfig] = None,
    confirm: Optional[Callable[[InstallTask], bool]] = None,
    connector: Optional[Connector] = None,
    provisioner: Optional[ResourceProvisioner] = None,
    poller: Optional[ReadinessPoller] = None,
    resource_base: Optional[Path] = None,
    kubeconfig_dir: Union[str, Path] = '.',
) -> InstallReport:
    """Install k3OS on every node in ``args``.

    Args:
        args: Nodes, keys and role selection for the run
        config: Installer configuration (global configuration if omitted)
        confirm: Asked before any node is overwritten unless ``args.confirmed``
        connector: Overrides the live/dry-run connector picked from ``args``
        provisioner: Overrides the image provisioner
        poller: Overrides the server readiness poller
        resource_base: Parent of the temporary resource directory
        kubeconfig_dir: Where the server kubeconfig is saved

    Returns:
        InstallReport: Per-node results and the saved kubeconfig path

    Raises:
        InputError: Invalid arguments, before any download or remote work
        VerificationError: An image could not be fetched or verified
        InstallError: One or more nodes failed; carries every failure
        ReadinessTimeoutError: The server never came up
        CredentialRetrievalError: The kubeconfig could not be fetched
    """
    config = config or get_config()
    task = build_task(args)
    connector = connector or make_connector(task.dry_run, config.ssh)
    provisioner = provisioner or ResourceProvisioner(config.release)

    with resource_directory(resource_base) as resource_dir:
        try:
            confirm_overwrite(task, args.confirmed, confirm)
        except UserAbortError:
            logger.info("Install aborted, no node was modified")
            return InstallReport(aborted=True)

        provisioner.provision(task.targets, resource_dir)

        units = make_install_units(task.targets, connector, resource_dir, config.release)
        results = Orchestrator(config.orchestrator.workers).run(units)
        check_results(results)

    report = InstallReport(results=results)

    if task.server is not None and not task.dry_run:
        if poller is None:
            fetch = functools.partial(
                fetch_kubeconfig, connector, remote_path=config.readiness.credential_path
            )
            poller = ReadinessPoller(config.readiness, fetch)
        report.kubeconfig = poller.run(task.server.node, kubeconfig_dir)

    return report


def confirm_overwrite(
    task: InstallTask,
    confirmed: bool,
    confirm: Optional[Callable[[InstallTask], bool]],
) -> None:
    """Raise ``UserAbortError`` unless overwriting the nodes was confirmed."""
    if confirmed:
        return
    if confirm is None:
        raise InputError("install needs to be confirmed (--yes|-y)")
    if not confirm(task):
        raise UserAbortError("install declined")
