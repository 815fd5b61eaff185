"""Application configuration stored as JSON."""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from server_manager.ui import print_error

DEFAULT_CONFIG_FILE = "/etc/server_manager/config.json"
COMPOSE_WORKING_DIR_LABEL = "com.docker.compose.project.working_dir"


@dataclass
class AppConfig:
    """
    Configuration for the server manager.

    Attributes:
        log_file: Where the debug log is written.
        stacks_dir: Directory Dockge manages compose stacks in.
        dockge_dir: Directory holding Dockge's own compose.yaml.
        dockge_compose_url: Upstream compose.yaml for Dockge.
        dockge_port: Port Dockge listens on (display only).
        docker_gpg_url: Docker's apt signing key.
        docker_repo_url: Docker's apt repository.
        docker_conflicting_packages: Distro packages removed before installing Docker.
        docker_packages: Docker packages installed from the upstream repository.
        tailscale_repo_url: Base URL of Tailscale's Ubuntu repository.
        tailscale_codename: Ubuntu codename for the Tailscale repo; empty means detect.
        compose_project_label: Container label holding a compose project's directory.
    """

    log_file: str = "/var/log/server_manager.log"
    stacks_dir: str = "/opt/stacks"
    dockge_dir: str = "/opt/dockge"
    dockge_compose_url: str = (
        "https://raw.githubusercontent.com/louislam/dockge/master/compose.yaml"
    )
    dockge_port: int = 5001
    docker_gpg_url: str = "https://download.docker.com/linux/ubuntu/gpg"
    docker_repo_url: str = "https://download.docker.com/linux/ubuntu"
    docker_conflicting_packages: List[str] = field(
        default_factory=lambda: [
            "docker.io",
            "docker-doc",
            "docker-compose",
            "docker-compose-v2",
            "podman-docker",
            "containerd",
            "runc",
        ]
    )
    docker_packages: List[str] = field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )
    tailscale_repo_url: str = "https://pkgs.tailscale.com/stable/ubuntu"
    tailscale_codename: str = ""
    compose_project_label: str = COMPOSE_WORKING_DIR_LABEL

    @property
    def dockge_compose_file(self) -> str:
        return os.path.join(self.dockge_dir, "compose.yaml")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Build a config from a dict, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def save_config(config: AppConfig, path: str = DEFAULT_CONFIG_FILE) -> bool:
    """Save the application configuration to a JSON file."""
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            json.dump(config.to_dict(), f, indent=2)
        return True
    except OSError as e:
        print_error(f"Failed to save configuration: {e}")
        return False


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from JSON file or return default config."""
    path = path or DEFAULT_CONFIG_FILE
    if not os.path.exists(path):
        return AppConfig()
    try:
        with open(path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")
        return AppConfig.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        print_error(f"Failed to load configuration from {path}: {e}")
    return AppConfig()
