"""
Command line entry point.

Run without a subcommand for the interactive menu, or call a single action
directly, e.g.:

    sudo server-manager update-apps --all --json
"""

import json
import signal
import sys
from typing import Any, Callable, Optional, Sequence

import click
from rich.traceback import install as install_rich_traceback

from server_manager import APP_NAME, VERSION
from server_manager.actions.docker import (
    docker_system_prune,
    install_docker,
    install_dockge,
    update_dockge,
)
from server_manager.actions.system import setup_unattended_upgrades, update_system
from server_manager.actions.tailscale import install_tailscale
from server_manager.actions.users import create_user, install_ssh_key
from server_manager.commands import check_root
from server_manager.config import DEFAULT_CONFIG_FILE, AppConfig, load_config, save_config
from server_manager.errors import ProjectSelectionError, RuntimeUnavailable
from server_manager.fleet import (
    AllProjects,
    ComposeFleetUpdater,
    ManagedProject,
    UpdatePlan,
    select_by_name,
)
from server_manager.log import setup_logger
from server_manager.menu import main_menu, run_action, run_all_actions
from server_manager.runtime import DockerCli
from server_manager.ui import console, print_error, print_success, print_warning


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(sig: int, frame: Any) -> None:
    """Gracefully handle termination signals (SIGINT, SIGTERM)."""
    try:
        sig_name = signal.Signals(sig).name
        print_warning(f"Process interrupted by {sig_name}")
    except ValueError:
        print_warning(f"Process interrupted by signal {sig}")
    sys.exit(128 + sig)


def plan_selector(
    update_all: bool, project_name: Optional[str]
) -> Optional[Callable[[Sequence[ManagedProject]], UpdatePlan]]:
    """Return a non-interactive plan selector, or None to prompt the operator."""
    if update_all:
        return lambda projects: AllProjects()
    if project_name:
        return lambda projects: select_by_name(projects, project_name)
    return None


def _run(ctx: click.Context, handler: Callable[[AppConfig], Any]) -> None:
    if not run_action(handler, ctx.obj):
        ctx.exit(1)


# ----------------------------------------------------------------
# Click Commands
# ----------------------------------------------------------------
@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="JSON configuration file.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Override the log file location.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging on the console.")
@click.option(
    "--skip-root-check",
    is_flag=True,
    help="Do not refuse to start without root privileges.",
)
@click.version_option(VERSION, prog_name=APP_NAME)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str,
    log_file: Optional[str],
    verbose: bool,
    skip_root_check: bool,
) -> None:
    """Ubuntu server maintenance: updates, users, Docker, Dockge and Tailscale."""
    config = load_config(config_path)
    if log_file:
        config.log_file = log_file
    setup_logger(config.log_file, verbose=verbose)

    if not skip_root_check and not check_root():
        print_error("This tool must be run as root. Please use sudo.")
        ctx.exit(1)

    ctx.obj = config
    if ctx.invoked_subcommand is None:
        main_menu(config)


@cli.command("run-all")
@click.pass_context
def run_all_cmd(ctx: click.Context) -> None:
    """Update the system, enable unattended upgrades and install Docker."""
    _run(ctx, run_all_actions)


@cli.command("update-system")
@click.pass_context
def update_system_cmd(ctx: click.Context) -> None:
    """Upgrade all packages and clean up."""
    _run(ctx, update_system)


@cli.command("unattended-upgrades")
@click.pass_context
def unattended_upgrades_cmd(ctx: click.Context) -> None:
    """Install and enable unattended-upgrades."""
    _run(ctx, setup_unattended_upgrades)


@cli.command("install-docker")
@click.pass_context
def install_docker_cmd(ctx: click.Context) -> None:
    """Install Docker Engine from Docker's repository."""
    _run(ctx, install_docker)


@cli.command("install-dockge")
@click.pass_context
def install_dockge_cmd(ctx: click.Context) -> None:
    """Install and start Dockge."""
    _run(ctx, install_dockge)


@cli.command("update-dockge")
@click.pass_context
def update_dockge_cmd(ctx: click.Context) -> None:
    """Pull and recreate Dockge."""
    _run(ctx, update_dockge)


@cli.command("prune")
@click.option(
    "--all-images/--dangling-only",
    default=None,
    help="Also remove unused images (asks when omitted).",
)
@click.pass_context
def prune_cmd(ctx: click.Context, all_images: Optional[bool]) -> None:
    """Remove unused Docker data (never volumes)."""
    _run(ctx, lambda config: docker_system_prune(config, all_images=all_images))


@cli.command("tailscale")
@click.pass_context
def tailscale_cmd(ctx: click.Context) -> None:
    """Install Tailscale and connect to the tailnet."""
    _run(ctx, install_tailscale)


@cli.command("create-user")
@click.argument("username")
@click.option("--sudo/--no-sudo", "grant_sudo", default=True, show_default=True)
@click.pass_context
def create_user_cmd(ctx: click.Context, username: str, grant_sudo: bool) -> None:
    """Create USERNAME and add it to the sudo and docker groups."""
    _run(ctx, lambda config: create_user(config, username, grant_sudo=grant_sudo))


@cli.command("add-ssh-key")
@click.argument("username")
@click.option(
    "--key-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Public key file; prompts when omitted.",
)
@click.pass_context
def add_ssh_key_cmd(ctx: click.Context, username: str, key_file: Optional[str]) -> None:
    """Authorize an SSH public key for USERNAME."""
    public_key = None
    if key_file:
        with open(key_file, "r") as f:
            public_key = f.read()
    _run(ctx, lambda config: install_ssh_key(config, username, public_key))


@cli.command("write-config")
@click.pass_context
def write_config_cmd(ctx: click.Context) -> None:
    """Save the effective configuration to the --config file."""
    path = ctx.parent.params["config_path"]
    if not save_config(ctx.obj, path):
        ctx.exit(1)
    print_success(f"Configuration written to {path}")


@cli.command("update-apps")
@click.option("--all", "update_all", is_flag=True, help="Update every running project.")
@click.option(
    "--project", "project_name", default=None, metavar="NAME", help="Update one project."
)
@click.option("--json", "as_json", is_flag=True, help="Print outcomes as JSON on stdout.")
@click.pass_context
def update_apps_cmd(
    ctx: click.Context,
    update_all: bool,
    project_name: Optional[str],
    as_json: bool,
) -> None:
    """Pull and recreate running Docker Compose applications."""
    if update_all and project_name:
        raise click.UsageError("--all and --project cannot be combined.")

    select = plan_selector(update_all, project_name)
    config: AppConfig = ctx.obj
    updater = ComposeFleetUpdater(runtime=DockerCli(), label=config.compose_project_label)

    # Keep stdout clean for the JSON document.
    previous_stderr = console.stderr
    if as_json:
        console.stderr = True
    try:
        outcomes = updater.run(select=select)
    except (RuntimeUnavailable, ProjectSelectionError) as e:
        print_error(str(e))
        ctx.exit(1)
    finally:
        console.stderr = previous_stderr

    if as_json:
        click.echo(json.dumps([outcome.to_dict() for outcome in outcomes]))
    if any(not outcome.succeeded for outcome in outcomes):
        ctx.exit(1)


# ----------------------------------------------------------------
# Main Entry Point
# ----------------------------------------------------------------
def main() -> None:
    """Main entry point for the server manager."""
    install_rich_traceback(show_locals=False)
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    try:
        cli(prog_name="server-manager")
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
