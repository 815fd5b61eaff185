"""Tailscale installation and tailnet login."""

from server_manager.commands import command_exists, run_command, ubuntu_codename
from server_manager.config import AppConfig
from server_manager.errors import ActionError
from server_manager.ui import (
    NordColors,
    console,
    display_panel,
    pause,
    print_message,
    print_section,
    print_step,
    print_success,
)

TAILSCALE_KEYRING = "/usr/share/keyrings/tailscale-archive-keyring.gpg"
TAILSCALE_SOURCES_FILE = "/etc/apt/sources.list.d/tailscale.list"


def tailscale_codename(config: AppConfig) -> str:
    """Ubuntu codename used for Tailscale's repository."""
    if config.tailscale_codename:
        return config.tailscale_codename
    try:
        return ubuntu_codename()
    except ValueError as e:
        raise ActionError(str(e)) from e


def add_tailscale_repository(config: AppConfig) -> None:
    """Install Tailscale's keyring and apt source list."""
    codename = tailscale_codename(config)
    base = config.tailscale_repo_url.rstrip("/")
    print_step(f"Adding Tailscale's repository for Ubuntu {codename}...")
    run_command(
        ["curl", "-fsSL", f"{base}/{codename}.noarmor.gpg", "-o", TAILSCALE_KEYRING]
    )
    run_command(
        [
            "curl",
            "-fsSL",
            f"{base}/{codename}.tailscale-keyring.list",
            "-o",
            TAILSCALE_SOURCES_FILE,
        ]
    )


def install_tailscale(config: AppConfig) -> None:
    """Install Tailscale if needed, then connect this machine to the tailnet."""
    print_section("Tailscale Setup")

    if command_exists("tailscale"):
        print_message(
            "Tailscale is already installed. Proceeding to connect...", NordColors.YELLOW
        )
    else:
        print_step("Tailscale not found. Installing...")
        add_tailscale_repository(config)
        print_step("Updating package list and installing Tailscale...")
        run_command(["apt-get", "update", "-y"])
        run_command(["apt-get", "install", "-y", "tailscale"])
        print_success("Tailscale package installed successfully.")

    display_panel(
        "The next step prints a URL to authenticate this server.\n"
        "Open it in a browser and log in to your Tailscale account.",
        style=NordColors.YELLOW,
        title="ACTION REQUIRED",
    )
    run_command(["tailscale", "up"])
    console.print()
    pause("After you have authenticated in your browser, press Enter to continue")

    print_step("Fetching your Tailscale IP address...")
    ts_ip = run_command(["tailscale", "ip", "-4"], capture_output=True).stdout.strip()
    console.print(
        f"Connected! Your Tailscale IPv4 address is: [bold {NordColors.YELLOW}]{ts_ip}[/]"
    )
    print_success("Tailscale setup complete")
