"""Post-install server readiness and kubeconfig retrieval."""

import logging
import time
import uuid
import warnings
from pathlib import Path
from typing import Callable, Optional, Union

import requests
import urllib3
from tenacity import RetryError, Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from k3pi.config import ReadinessConfig

from .configuration import url_host
from .errors import CredentialRetrievalError, K3piError, ReadinessTimeoutError
from .models import Node
from .session import Connector

logger = logging.getLogger("k3pi.readiness")

LOCAL_ADDRESSES = ("127.0.0.1", "localhost", "[::1]")


def probe_api(address: str, port: int, timeout: float = 5) -> bool:
    """Return True once anything answers HTTPS on the k3s API port."""
    url = f"https://{url_host(address)}:{port}/ping"
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", urllib3.exceptions.InsecureRequestWarning)
        try:
            requests.get(url, verify=False, timeout=timeout)
        except requests.RequestException as e:
            logger.debug("API probe of %s failed: %s", url, e)
            return False
    return True


def fetch_kubeconfig(connector: Connector, node: Node, remote_path: str) -> str:
    """Read the server's kubeconfig and point it at the server's address."""
    with connector.open(node) as session:
        result = session.execute(f"sudo cat {remote_path}")

    content = result.output
    if not content.strip():
        raise CredentialRetrievalError(f"{remote_path} on {node.address} is empty")
    for local in LOCAL_ADDRESSES:
        content = content.replace(f"https://{local}:", f"https://{url_host(node.address)}:")
    return content


def credential_filename(directory: Union[str, Path], pattern: str) -> Path:
    """A new unique local filename from a pattern like ``k3s-*.yaml``."""
    return Path(directory) / pattern.replace('*', uuid.uuid4().hex[:8], 1)


class ReadinessPoller:
    """Waits for the server API, then fetches its kubeconfig with retries."""

    def __init__(
        self,
        config: ReadinessConfig,
        fetch: Callable[[Node], str],
        probe: Optional[Callable[[str, int], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.fetch = fetch
        self.probe = probe or probe_api
        self.sleep = sleep
        self.clock = clock

    def wait_until_ready(self, node: Node) -> None:
        """Poll the server until it answers or the timeout passes.

        Raises:
            ReadinessTimeoutError: If the server never answered
        """
        logger.info("⏳ Waiting for %s to come up (timeout: %ss)", node.info(), self.config.timeout)
        deadline = self.clock() + self.config.timeout
        while True:
            if self.probe(node.address, self.config.api_port):
                logger.info("✅ %s is reachable", node.info())
                return
            if self.clock() >= deadline:
                raise ReadinessTimeoutError(
                    f"{node.address} did not become reachable within {self.config.timeout}s"
                )
            self.sleep(self.config.poll_interval)

    def retrieve_credentials(self, node: Node, destination: Path) -> Path:
        """Fetch the kubeconfig, retrying with a fixed backoff, and save it.

        Stops at the first success.

        Raises:
            CredentialRetrievalError: If every attempt failed
        """
        logger.info("Waiting for kubeconfig ...")
        retrying = Retrying(
            stop=stop_after_attempt(self.config.credential_attempts),
            wait=wait_fixed(self.config.credential_backoff),
            retry=retry_if_exception_type((K3piError, OSError)),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.INFO),
        )
        try:
            content = retrying(self.fetch, node)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise CredentialRetrievalError(
                f"failed to fetch kubeconfig from {node.address} after "
                f"{self.config.credential_attempts} attempts: {last_error}"
            ) from last_error

        destination.write_text(content)
        logger.info("✅ Kubeconfig saved to: %s", destination)
        return destination

    def run(self, node: Node, directory: Union[str, Path] = '.') -> Path:
        """Wait for the server and save its kubeconfig into ``directory``."""
        self.wait_until_ready(node)
        destination = credential_filename(directory, self.config.credential_pattern)
        return self.retrieve_credentials(node, destination)
