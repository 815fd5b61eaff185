"""User provisioning and SSH authorized_keys management."""

import grp
import os
import pwd
import re
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.completion import PathCompleter
from prompt_toolkit.styles import Style as PtStyle

from server_manager.commands import run_command
from server_manager.config import AppConfig
from server_manager.errors import ActionError
from server_manager.ui import (
    NordColors,
    ask,
    print_message,
    print_section,
    print_step,
    print_success,
)

USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
SSH_KEY_PATTERN = re.compile(
    r"^(ssh-rsa|ssh-ed25519|ecdsa-sha2-nistp(?:256|384|521)"
    r"|sk-ssh-ed25519@openssh\.com|sk-ecdsa-sha2-nistp256@openssh\.com)"
    r"\s+[A-Za-z0-9+/]+={0,3}(\s+\S.*)?$"
)


def get_prompt_style() -> PtStyle:
    """Return a consistent prompt_toolkit style for all prompts."""
    return PtStyle.from_dict(
        {
            "prompt": f"bold {NordColors.PURPLE}",
        }
    )


# ----------------------------------------------------------------
# Validation
# ----------------------------------------------------------------
def validate_username(username: str) -> str:
    """Return the username if it is a valid login name, else raise ActionError."""
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        raise ActionError(
            f"Invalid username '{username}'. Use lowercase letters, digits, '-' or '_' "
            "(max 32 characters, not starting with a digit or '-')."
        )
    return username


def parse_public_keys(text: str) -> List[str]:
    """
    Extract OpenSSH public keys from text, one per line.

    Blank lines and '#' comments are skipped. Any other line that is not a
    public key raises ActionError, so a private key pasted by mistake is
    never written anywhere.
    """
    keys = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if not SSH_KEY_PATTERN.match(line):
            preview = line if len(line) <= 40 else line[:37] + "..."
            raise ActionError(f"Not a valid SSH public key: {preview}")
        keys.append(line)
    if not keys:
        raise ActionError("No SSH public key provided.")
    return keys


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
        return True
    except KeyError:
        return False


def group_exists(group: str) -> bool:
    try:
        grp.getgrnam(group)
        return True
    except KeyError:
        return False


# ----------------------------------------------------------------
# User Provisioning
# ----------------------------------------------------------------
def create_user(
    config: AppConfig,
    username: str,
    grant_sudo: bool = True,
    docker_access: bool = True,
) -> None:
    """
    Create a login user and add it to the admin groups.

    An existing user is left as is apart from group membership. ``adduser``
    prompts for the new password on the terminal.
    """
    print_section("User Provisioning")
    username = validate_username(username)

    if user_exists(username):
        print_message(f"User {username} already exists.", NordColors.YELLOW)
    else:
        print_step(f"Creating user {username}...")
        run_command(["adduser", "--gecos", "", username])

    if grant_sudo:
        print_step(f"Granting sudo access to {username}...")
        run_command(["usermod", "-aG", "sudo", username])

    if docker_access:
        if group_exists("docker"):
            print_step(f"Adding {username} to the docker group...")
            run_command(["usermod", "-aG", "docker", username])
        else:
            print_message(
                "docker group not found; skipping Docker access.", NordColors.FROST_3
            )

    print_success(f"User {username} is ready")


# ----------------------------------------------------------------
# SSH Keys
# ----------------------------------------------------------------
def prompt_public_keys() -> str:
    """Read public keys from a file chosen with path completion, or pasted text."""
    path_completer = PathCompleter(only_directories=False, expanduser=True)
    key_path = pt_prompt(
        "Path to the public key file (leave empty to paste it): ",
        completer=path_completer,
        style=get_prompt_style(),
    ).strip()
    if not key_path:
        return ask("Paste the SSH public key")

    key_path = os.path.expanduser(key_path)
    if not os.path.isfile(key_path):
        raise ActionError(f"Public key file not found: {key_path}")
    with open(key_path, "r") as f:
        return f.read()


def install_ssh_key(
    config: AppConfig, username: str, public_key: Optional[str] = None
) -> int:
    """
    Append public keys to a user's authorized_keys.

    Keys already present are not duplicated. Returns the number of keys added.
    """
    print_section("SSH Key Installation")
    username = validate_username(username)
    try:
        account = pwd.getpwnam(username)
    except KeyError as e:
        raise ActionError(f"User {username} does not exist. Create it first.") from e

    if public_key is None:
        public_key = prompt_public_keys()
    keys = parse_public_keys(public_key)

    ssh_dir = Path(account.pw_dir) / ".ssh"
    ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    os.chmod(ssh_dir, 0o700)
    authorized_keys = ssh_dir / "authorized_keys"

    existing = ""
    if authorized_keys.exists():
        existing = authorized_keys.read_text()
    present = {line.strip() for line in existing.splitlines()}

    added = 0
    with open(authorized_keys, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        for key in keys:
            if key in present:
                print_message("Key already authorized, skipping.", NordColors.FROST_3)
                continue
            f.write(f"{key}\n")
            present.add(key)
            added += 1

    os.chmod(authorized_keys, 0o600)
    run_command(["chown", "-R", f"{account.pw_uid}:{account.pw_gid}", str(ssh_dir)])

    print_success(f"{added} key(s) added to {authorized_keys}")
    return added
