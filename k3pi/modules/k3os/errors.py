"""Exceptions raised by the k3OS install pipeline."""

from typing import List, Optional


class K3piError(Exception):
    """Base class for all install pipeline errors."""


class InputError(K3piError):
    """Invalid or incomplete install arguments. Raised before any remote work."""


class VerificationError(K3piError):
    """An image or checksum download failed, or the checksum did not match."""


class NodeConnectionError(K3piError):
    """Authentication or transport failure while talking to a single node."""

    def __init__(self, address: str, message: str):
        super().__init__(f"{address}: {message}")
        self.address = address


class RemoteCommandError(K3piError):
    """A remote command exited non-zero or its transport failed."""

    def __init__(self, command: str, exit_status: Optional[int] = None, output: str = ""):
        if exit_status is None:
            message = f"Command '{command}' failed"
        else:
            message = f"Command '{command}' failed with exit status {exit_status}"
        if output:
            message += f":\n{output}"
        super().__init__(message)
        self.command = command
        self.exit_status = exit_status
        self.output = output


class ReadinessTimeoutError(K3piError):
    """The server node never became reachable within the wait window."""


class CredentialRetrievalError(K3piError):
    """The server's kubeconfig could not be fetched after all attempts."""


class UserAbortError(K3piError):
    """The operator declined the overwrite confirmation."""


class InstallError(K3piError):
    """One or more nodes failed to install.

    Carries every failing result so the caller can report them together.
    """

    def __init__(self, failures: List["InstallResult"]):  # noqa: F821
        self.failures = failures
        details = "\n".join(f"  - {result.unit}: {result.error}" for result in failures)
        super().__init__(f"install failed on {len(failures)} node(s):\n{details}")
