"""Interactive main menu."""

import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from rich import box
from rich.table import Table

from server_manager.actions.docker import (
    docker_system_prune,
    install_docker,
    install_dockge,
    update_dockge,
)
from server_manager.actions.system import setup_unattended_upgrades, update_system
from server_manager.actions.tailscale import install_tailscale
from server_manager.actions.users import create_user, install_ssh_key
from server_manager.config import AppConfig
from server_manager.errors import RuntimeUnavailable, ServerManagerError
from server_manager.fleet import ComposeFleetUpdater, UpdateOutcome
from server_manager.ui import (
    NordColors,
    ask,
    clear_screen,
    confirm,
    console,
    create_header,
    pause,
    print_error,
    print_section,
    print_success,
)

logger = logging.getLogger("server_manager")


@dataclass(frozen=True)
class MenuAction:
    """One numbered entry of the main menu."""

    key: str
    label: str
    group: str
    handler: Callable[[AppConfig], Any]


# ----------------------------------------------------------------
# Composite and Interactive Actions
# ----------------------------------------------------------------
def run_all_actions(config: AppConfig) -> None:
    """Update the system, enable unattended upgrades and install Docker."""
    console.print(f"\n[bold {NordColors.YELLOW}]===== RUNNING ALL ACTIONS =====[/]")
    update_system(config)
    setup_unattended_upgrades(config)
    install_docker(config)
    # Application installs are not part of Run All.
    console.print(f"\n[bold {NordColors.YELLOW}]===== ALL ACTIONS COMPLETED =====[/]")


def update_docker_apps(config: AppConfig) -> List[UpdateOutcome]:
    """Interactively update running Docker Compose applications."""
    print_section("Update Docker Compose Applications")
    updater = ComposeFleetUpdater(label=config.compose_project_label)
    try:
        return updater.run()
    except RuntimeUnavailable as e:
        raise RuntimeUnavailable(
            f"Docker is not installed or not running ({e}). "
            "Use the Install Docker option first."
        ) from e


def create_user_interactive(config: AppConfig) -> None:
    username = ask("Username to create")
    grant_sudo = confirm(f"Grant sudo access to {username}?", default=True)
    create_user(config, username, grant_sudo=grant_sudo)


def install_ssh_key_interactive(config: AppConfig) -> None:
    username = ask("Install the key for which user")
    install_ssh_key(config, username)


MENU_ACTIONS: List[MenuAction] = [
    MenuAction(
        "1",
        "Run All Actions (Update, Unattended Upgrades, Docker)",
        "System & Maintenance",
        run_all_actions,
    ),
    MenuAction(
        "2",
        "Update the System",
        "System & Maintenance",
        update_system,
    ),
    MenuAction(
        "3",
        "Setup Unattended Upgrades",
        "System & Maintenance",
        setup_unattended_upgrades,
    ),
    MenuAction(
        "4",
        "Install Docker",
        "Docker Management",
        install_docker,
    ),
    MenuAction(
        "5",
        "Install Dockge (Requires Docker)",
        "Docker Management",
        install_dockge,
    ),
    MenuAction(
        "6",
        "Update Dockge",
        "Docker Management",
        update_dockge,
    ),
    MenuAction(
        "7",
        "Update Other Docker Apps (Compose)",
        "Docker Management",
        update_docker_apps,
    ),
    MenuAction(
        "8",
        "Docker System Prune (Cleanup)",
        "Docker Management",
        docker_system_prune,
    ),
    MenuAction(
        "9",
        "Install/Connect Tailscale",
        "Network Tools",
        install_tailscale,
    ),
    MenuAction(
        "10",
        "Create User",
        "Users & Access",
        create_user_interactive,
    ),
    MenuAction(
        "11",
        "Install SSH Public Key",
        "Users & Access",
        install_ssh_key_interactive,
    ),
]


def find_action(choice: str) -> Optional[MenuAction]:
    for action in MENU_ACTIONS:
        if action.key == choice:
            return action
    return None


# ----------------------------------------------------------------
# Action Runner
# ----------------------------------------------------------------
def run_action(handler: Callable[[AppConfig], Any], config: AppConfig) -> bool:
    """
    Run one action, reporting failures instead of propagating them.

    Returns True when the action finished without error.
    """
    try:
        handler(config)
        return True
    except ServerManagerError as e:
        print_error(str(e))
    except subprocess.CalledProcessError as e:
        cmd = " ".join(e.cmd) if isinstance(e.cmd, (list, tuple)) else str(e.cmd)
        print_error(f"Action stopped: '{cmd}' exited with status {e.returncode}")
    except FileNotFoundError as e:
        print_error(f"Required program not found: {e.filename or e}")
    logger.debug(f"Action {getattr(handler, '__name__', handler)} failed")
    return False


# ----------------------------------------------------------------
# Main Interactive Menu Loop
# ----------------------------------------------------------------
def render_menu() -> None:
    """Print the main menu table."""
    table = Table(
        show_header=False,
        box=box.ROUNDED,
        border_style=NordColors.FROST_3,
        padding=(0, 1),
    )
    table.add_column("Key", style=f"bold {NordColors.FROST_4}", justify="right")
    table.add_column("Action", style=NordColors.SNOW_STORM_1)

    group = None
    for action in MENU_ACTIONS:
        if action.group != group:
            group = action.group
            table.add_row("", f"[bold {NordColors.FROST_2}]--- {group} ---[/]")
        style = NordColors.YELLOW if action.key == "1" else NordColors.SNOW_STORM_1
        table.add_row(action.key, f"[{style}]{action.label}[/]")
    table.add_row("q", f"[{NordColors.RED}]Quit[/]")
    console.print(table)


def main_menu(config: AppConfig) -> None:
    """Display the main menu and process user input until the operator quits."""
    while True:
        clear_screen()
        console.print(create_header())
        render_menu()
        choice = ask("Enter your choice").strip().lower()

        if choice in ("q", "quit", "exit"):
            break

        action = find_action(choice)
        if action is None:
            print_error("Invalid option. Please try again.")
        else:
            run_action(action.handler, config)

        console.print()
        pause()

    print_success("Exiting. Goodbye!")
