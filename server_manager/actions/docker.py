"""Docker engine, Dockge and cleanup actions."""

import os
import subprocess
from pathlib import Path
from typing import Optional

from server_manager.commands import (
    docker_available,
    package_installed,
    run_command,
    service_active,
    ubuntu_codename,
)
from server_manager.config import AppConfig
from server_manager.errors import ActionError
from server_manager.runtime import DockerCli, command_diagnostic
from server_manager.ui import (
    NordColors,
    confirm,
    console,
    display_panel,
    print_message,
    print_section,
    print_step,
    print_success,
    print_warning,
    spinner,
)

KEYRINGS_DIR = "/etc/apt/keyrings"
DOCKER_KEY_FILE = os.path.join(KEYRINGS_DIR, "docker.asc")
DOCKER_SOURCES_FILE = "/etc/apt/sources.list.d/docker.list"


def require_docker() -> None:
    """Raise ActionError unless Docker is installed and its daemon answers."""
    if not docker_available():
        raise ActionError(
            "Docker is not installed or not running. Use the Install Docker option first."
        )


def docker_repo_line(config: AppConfig, arch: str, codename: str) -> str:
    """Return the apt sources line for Docker's repository."""
    return (
        f"deb [arch={arch} signed-by={DOCKER_KEY_FILE}] "
        f"{config.docker_repo_url} {codename} stable\n"
    )


# ----------------------------------------------------------------
# Docker Engine
# ----------------------------------------------------------------
def remove_conflicting_packages(config: AppConfig) -> None:
    """Remove distro Docker packages that clash with docker-ce."""
    print_step("Removing any conflicting old Docker packages...")
    for pkg in config.docker_conflicting_packages:
        if package_installed(pkg):
            run_command(["apt-get", "remove", "-y", pkg])
        else:
            print_message(f"Package {pkg} not found, skipping.", NordColors.FROST_3)
    run_command(["apt-get", "autoremove", "-y"])


def add_docker_repository(config: AppConfig) -> None:
    """Install Docker's signing key and apt source."""
    print_step("Setting up Docker's APT repository...")
    run_command(["apt-get", "update", "-y"])
    run_command(["apt-get", "install", "-y", "ca-certificates", "curl"])

    run_command(["install", "-m", "0755", "-d", KEYRINGS_DIR])
    run_command(["curl", "-fsSL", config.docker_gpg_url, "-o", DOCKER_KEY_FILE])
    run_command(["chmod", "a+r", DOCKER_KEY_FILE])

    arch = run_command(
        ["dpkg", "--print-architecture"], capture_output=True
    ).stdout.strip()
    try:
        codename = ubuntu_codename()
    except ValueError as e:
        raise ActionError(str(e)) from e
    Path(DOCKER_SOURCES_FILE).write_text(docker_repo_line(config, arch, codename))
    run_command(["apt-get", "update", "-y"])


def install_docker(config: AppConfig) -> None:
    """Install Docker Engine from Docker's repository and make sure it runs."""
    print_section("Docker Installation")
    remove_conflicting_packages(config)
    add_docker_repository(config)

    print_step("Installing Docker packages...")
    run_command(["apt-get", "install", "-y"] + list(config.docker_packages))

    print_step("Verifying Docker service status...")
    if not service_active("docker"):
        print_message(
            "Docker service is not running. Starting and enabling it now...",
            NordColors.FROST_3,
        )
        run_command(["systemctl", "start", "docker"])
        run_command(["systemctl", "enable", "docker"])
    else:
        print_message("Docker service is already running.", NordColors.FROST_3)

    run_command(["systemctl", "status", "docker", "--no-pager"], check=False)
    print_success("Docker installation complete")


# ----------------------------------------------------------------
# Dockge
# ----------------------------------------------------------------
def install_dockge(config: AppConfig) -> None:
    """Download Dockge's compose file and start it."""
    print_section("Dockge Installation")
    require_docker()

    print_step("Creating directories for stacks and Dockge configuration...")
    os.makedirs(config.stacks_dir, exist_ok=True)
    os.makedirs(config.dockge_dir, exist_ok=True)

    print_step(f"Downloading Dockge compose.yaml to {config.dockge_dir}...")
    run_command(
        ["curl", "-fsSL", config.dockge_compose_url, "--output", config.dockge_compose_file]
    )

    print_step("Starting Dockge server via Docker Compose...")
    run_command(["docker", "compose", "-f", config.dockge_compose_file, "up", "-d"])

    display_panel(
        f"Dockge is running. Open http://<your-server-ip>:{config.dockge_port}",
        style=NordColors.GREEN,
        title="Dockge Installed",
    )


def update_dockge(config: AppConfig, runtime: Optional[DockerCli] = None) -> None:
    """Pull the latest Dockge image and recreate its container."""
    print_section("Dockge Update")
    require_docker()
    if not os.path.isfile(config.dockge_compose_file):
        raise ActionError(
            f"Dockge compose file not found at '{config.dockge_compose_file}'. "
            "Is Dockge installed?"
        )

    runtime = runtime or DockerCli()
    try:
        with spinner("Pulling the latest Dockge image"):
            runtime.pull_project_images(config.dockge_dir)
        with spinner("Recreating the Dockge container with the new image"):
            runtime.recreate_project(config.dockge_dir, remove_orphans=False)
    except subprocess.CalledProcessError as e:
        raise ActionError(f"Dockge update failed: {command_diagnostic(e)}") from e

    print_success("Dockge update complete")
    print_warning(
        "Old images may still exist. Clean them up with the Docker System Prune option."
    )


# ----------------------------------------------------------------
# Cleanup
# ----------------------------------------------------------------
def docker_system_prune(config: AppConfig, all_images: Optional[bool] = None) -> None:
    """
    Remove unused Docker data.

    When ``all_images`` is None the operator is asked whether unused (not just
    dangling) images should go too. Volumes are never pruned.
    """
    print_section("Docker System Prune")
    require_docker()

    console.print(
        f"[{NordColors.YELLOW}]This will remove all unused Docker data, including:\n"
        "  - All stopped containers\n"
        "  - All networks not used by at least one container\n"
        "  - All build cache\n"
        "  - All dangling images (and optionally all unused images)[/]"
    )
    if all_images is None:
        all_images = confirm(
            "Remove ALL unused images (not just dangling ones)? This is more thorough.",
            default=False,
        )

    if all_images:
        print_step("Pruning all unused images and other data...")
        run_command(["docker", "system", "prune", "-a", "-f"])
    else:
        print_step("Pruning dangling images and other data...")
        run_command(["docker", "system", "prune", "-f"])
    print_success("Docker prune complete")

