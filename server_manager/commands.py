"""Command execution and host inspection helpers."""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional

from rich.markup import escape

from server_manager.ui import NordColors, console, print_error

logger = logging.getLogger("server_manager")

OS_RELEASE_FILE = "/etc/os-release"


# ----------------------------------------------------------------
# Command Execution Helper
# ----------------------------------------------------------------
def run_command(
    cmd: List[str],
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    capture_output: bool = False,
    timeout: Optional[int] = None,
    quiet: bool = False,
) -> subprocess.CompletedProcess:
    """
    Execute a system command and return the CompletedProcess.

    Output streams to the terminal unless ``capture_output`` is set. Extra
    ``env`` entries are layered over the current environment. No timeout is
    applied by default: maintenance commands are operator-attended.
    With ``quiet`` a failure is only logged; the caller reports it.
    """
    cmd_display = " ".join(cmd)
    logger.debug(f"Executing command: {cmd_display}")
    full_env = os.environ.copy()
    if env:
        full_env.update(env)
    try:
        return subprocess.run(
            cmd,
            env=full_env,
            check=check,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        logger.debug(f"Command failed ({e.returncode}): {cmd_display}")
        if quiet:
            raise
        print_error(f"Command failed: {cmd_display}")
        if e.stderr:
            stderr = escape(e.stderr.strip())
            console.print(f"[bold {NordColors.RED}]Stderr: {stderr}[/]")
        raise
    except subprocess.TimeoutExpired:
        print_error(f"Command timed out after {timeout} seconds: {cmd_display}")
        raise


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system's PATH."""
    return shutil.which(cmd) is not None


def check_root() -> bool:
    """Return True if running with root privileges."""
    return os.geteuid() == 0 if hasattr(os, "geteuid") else False


def package_installed(package: str) -> bool:
    """Return True if dpkg reports the package as installed."""
    result = run_command(["dpkg", "-s", package], check=False, capture_output=True)
    return result.returncode == 0 and "Status: install ok installed" in result.stdout


def service_active(service: str) -> bool:
    """Return True if the systemd unit is active."""
    result = run_command(["systemctl", "is-active", "--quiet", service], check=False)
    return result.returncode == 0


def docker_available() -> bool:
    """Return True when the docker CLI exists and the daemon answers."""
    if not command_exists("docker"):
        return False
    result = run_command(["docker", "info"], check=False, capture_output=True)
    return result.returncode == 0


# ----------------------------------------------------------------
# OS Release Detection
# ----------------------------------------------------------------
def read_os_release(path: str = OS_RELEASE_FILE) -> Dict[str, str]:
    """Parse an os-release file into a dict of unquoted values."""
    values: Dict[str, str] = {}
    try:
        with open(path, "r") as f:
            lines = f.read().splitlines()
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return values
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


def ubuntu_codename(path: str = OS_RELEASE_FILE) -> str:
    """Return UBUNTU_CODENAME, falling back to VERSION_CODENAME."""
    release = read_os_release(path)
    codename = release.get("UBUNTU_CODENAME") or release.get("VERSION_CODENAME")
    if not codename:
        raise ValueError(f"No Ubuntu codename found in {path}")
    return codename
