"""Per-node k3OS installation.

An ``InstallUnit`` runs the full procedure for one target:

1. copy the rootfs image (own session, closed afterwards)
2. copy the generated config (new session, kept open)
3. extract the image over ``/``
4. install the config into ``/k3os/system``
5. reboot, ignoring the outcome
"""

import logging
import shlex
from enum import Enum
from pathlib import Path
from typing import Union

from k3pi.config import ReleaseConfig

from .errors import RemoteCommandError
from .models import Target
from .session import Connector

logger = logging.getLogger("k3pi.installer")

REBOOT_COMMAND = "sudo sync && sudo reboot -f"


class InstallState(str, Enum):
    """Progress of a single install unit."""
    PENDING = 'pending'
    CONNECTING = 'connecting'
    IMAGE_SENT = 'image_sent'
    CONFIG_SENT = 'config_sent'
    EXTRACTED = 'extracted'
    CONFIG_INSTALLED = 'config_installed'
    REBOOTED = 'rebooted'
    DONE = 'done'


class InstallUnit:
    """Installs k3OS on one target."""

    def __init__(
        self,
        target: Target,
        connector: Connector,
        resource_dir: Union[str, Path],
        release: ReleaseConfig,
    ):
        self.target = target
        self.connector = connector
        self.resource_dir = Path(resource_dir)
        self.release = release
        self.state = InstallState.PENDING

    @property
    def image_filename(self) -> str:
        return self.target.image_filename(self.release.image_template)

    @property
    def image_path(self) -> Path:
        return self.resource_dir / self.image_filename

    def extract_command(self) -> str:
        return f"sudo tar zxvf {shlex.quote(self.image_filename)} --strip-components=1 -C /"

    def install_config_command(self) -> str:
        return (
            f"sudo cp {shlex.quote(self.release.config_filename)} "
            f"{shlex.quote(self.release.config_destination)}"
        )

    def install(self) -> None:
        """Run the install procedure. Any exception means this node failed."""
        node = self.target.node
        mode = self.release.mode

        self.state = InstallState.CONNECTING
        with self.connector.open(node) as session:
            session.send(self.image_path, self.image_filename, mode)
        self.state = InstallState.IMAGE_SENT

        # A session that carried a file can still run commands.
        with self.connector.open(node) as session:
            session.send(self.target.config, self.release.config_filename, mode)
            self.state = InstallState.CONFIG_SENT

            session.execute(self.extract_command())
            self.state = InstallState.EXTRACTED

            session.execute(self.install_config_command())
            self.state = InstallState.CONFIG_INSTALLED

            # The connection drops when the node goes down, so an error here
            # is what a successful reboot looks like.
            try:
                session.execute(REBOOT_COMMAND)
            except RemoteCommandError as e:
                logger.debug("[%s] Reboot command ended with: %s", node.address, e)
            self.state = InstallState.REBOOTED

        self.state = InstallState.DONE
        logger.info("[%s] k3OS installed, node is rebooting", node.address)

    def __str__(self) -> str:
        return str(self.target)


def make_install_units(targets, connector: Connector, resource_dir, release: ReleaseConfig):
    """One install unit per target, in target order."""
    return [InstallUnit(target, connector, resource_dir, release) for target in targets]
