"""Configuration management for k3pi.

Configuration is loaded from multiple sources with the following precedence:
1. Explicitly passed parameters
2. Environment variables (``K3PI_*``, a ``.env`` file is honoured)
3. Configuration files
4. Default values
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger("k3pi.config")

DEFAULT_CONFIG_PATHS = [
    Path("/etc/k3pi/config.yaml"),
    Path("~/.config/k3pi/config.yaml").expanduser(),
    Path("k3pi.yaml").absolute(),
]

# (section, field) -> environment variable
ENV_OVERRIDES = {
    ("ssh", "port"): "K3PI_SSH_PORT",
    ("ssh", "key_path"): "K3PI_SSH_KEY_PATH",
    ("ssh", "connect_timeout"): "K3PI_SSH_CONNECT_TIMEOUT",
    ("ssh", "command_timeout"): "K3PI_SSH_CMD_TIMEOUT",
    ("release", "base_url"): "K3PI_RELEASE_URL",
    ("orchestrator", "workers"): "K3PI_WORKERS",
    ("readiness", "timeout"): "K3PI_READY_TIMEOUT",
    ("readiness", "credential_attempts"): "K3PI_CREDENTIAL_ATTEMPTS",
    ("readiness", "credential_backoff"): "K3PI_CREDENTIAL_BACKOFF",
    ("logging", "level"): "K3PI_LOG_LEVEL",
    ("logging", "file"): "K3PI_LOG_FILE",
}


class SSHConfig(BaseModel):
    """SSH connection configuration."""
    port: int = Field(default=22, description="SSH port number")
    key_path: str = Field(default="~/.ssh/id_rsa", description="Path to SSH private key")
    authorized_key: str = Field(
        default="~/.ssh/id_rsa.pub",
        description="Public key installed on nodes when none is given"
    )
    connect_timeout: int = Field(default=10, description="SSH connection timeout in seconds")
    command_timeout: int = Field(default=300, description="Remote command timeout in seconds")

    @field_validator('key_path')
    @classmethod
    def expand_key_path(cls, v: str) -> str:
        """Expand the user home directory in the key path."""
        return os.path.expanduser(v)


class ReleaseConfig(BaseModel):
    """Where k3OS artifacts come from and how they are placed on a node."""
    base_url: str = Field(
        default="https://github.com/rancher/k3os/releases/download/v0.3.0/{filename}",
        description="Download URL template, formatted with the artifact filename"
    )
    image_template: str = Field(default="k3os-rootfs-{arch}.tar.gz")
    checksum_template: str = Field(default="sha256sum-{arch}.txt")
    image_permissions: str = Field(default="0655", description="Octal mode of the copied image")
    config_filename: str = Field(default="config.yaml")
    config_destination: str = Field(default="/k3os/system/config.yaml")
    download_timeout: int = Field(default=60)

    @field_validator('image_permissions')
    @classmethod
    def validate_permissions(cls, v: str) -> str:
        int(v, 8)
        return v

    def url_for(self, filename: str) -> str:
        return self.base_url.format(filename=filename)

    @property
    def mode(self) -> int:
        return int(self.image_permissions, 8)


class OrchestratorConfig(BaseModel):
    """Install worker pool configuration."""
    workers: int = Field(default=5, ge=1, description="Number of parallel install workers")


class ReadinessConfig(BaseModel):
    """Post-install readiness polling and kubeconfig retrieval."""
    timeout: float = Field(default=60, description="Seconds to wait for the server API")
    poll_interval: float = Field(default=2)
    api_port: int = Field(default=6443)
    credential_attempts: int = Field(default=6, ge=1)
    credential_backoff: float = Field(default=15)
    credential_path: str = Field(default="/etc/rancher/k3s/k3s.yaml")
    credential_pattern: str = Field(default="k3s-*.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")
    file: Optional[str] = Field(default=None, description="Path to log file")
    max_size_mb: int = Field(default=10)
    backup_count: int = Field(default=3)


class InstallerConfig(BaseModel):
    """k3pi configuration."""
    model_config = ConfigDict(extra="ignore")

    ssh: SSHConfig = Field(default_factory=SSHConfig)
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> 'InstallerConfig':
        """Load configuration from file and environment variables."""
        config_data: Dict[str, Any] = {}

        if config_path:
            config_path = Path(config_path).expanduser().absolute()
            if config_path.exists():
                config_data = cls._load_config_file(config_path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        for (section, key), env_var in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value is not None:
                config_data.setdefault(section, {})[key] = value

        return cls(**config_data)

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path, 'r') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return {}


_config: Optional[InstallerConfig] = None


def get_config(config_path: Optional[Union[str, Path]] = None) -> InstallerConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = InstallerConfig.load(config_path)
    return _config


def set_config(config: Optional[InstallerConfig]) -> None:
    """Set (or with ``None``, reset) the global configuration instance."""
    global _config
    _config = config
