"""Operating system maintenance: package upgrades and unattended upgrades."""

from typing import Dict

from server_manager.commands import run_command
from server_manager.config import AppConfig
from server_manager.ui import print_section, print_step, print_success, print_warning

NONINTERACTIVE: Dict[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}


def update_system(config: AppConfig) -> None:
    """Update package lists, upgrade installed packages and clean up."""
    print_section("System Update")
    print_step("Updating package lists...")
    run_command(["apt-get", "update", "-y"])

    print_step("Upgrading installed packages...")
    run_command(["apt-get", "upgrade", "-y"], env=NONINTERACTIVE)

    print_step("Cleaning up unused packages...")
    run_command(["apt-get", "autoremove", "-y"])
    run_command(["apt-get", "clean"])
    print_success("System update complete")


def setup_unattended_upgrades(config: AppConfig) -> None:
    """Install unattended-upgrades and enable its periodic runs."""
    print_section("Unattended Upgrades")
    print_step("Updating package lists...")
    run_command(["apt-get", "update", "-y"])

    print_step("Installing unattended-upgrades package...")
    run_command(["apt-get", "install", "-y", "unattended-upgrades"])

    print_step("Configuring unattended-upgrades to run automatically...")
    run_command(
        ["dpkg-reconfigure", "--priority=low", "unattended-upgrades"],
        env=NONINTERACTIVE,
    )

    print_step("Checking service status:")
    status = run_command(
        ["systemctl", "status", "unattended-upgrades", "--no-pager"], check=False
    )
    if status.returncode != 0:
        print_warning("unattended-upgrades service is not reporting as running.")
    print_success("Unattended upgrades setup complete")
