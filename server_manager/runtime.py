"""Thin client over the docker CLI, parsing structured JSON output."""

import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

from server_manager.commands import run_command
from server_manager.errors import RuntimeUnavailable

logger = logging.getLogger("server_manager")


def command_diagnostic(error: subprocess.CalledProcessError) -> str:
    """Pick the most useful text out of a failed command."""
    for stream in (error.stderr, error.stdout):
        if stream and stream.strip():
            return stream.strip()
    return f"exit status {error.returncode}"


class DockerCli:
    """
    Container runtime client backed by the ``docker`` binary.

    Discovery uses ``docker ps -q`` followed by a single ``docker inspect``
    whose JSON output is parsed, so label absence never depends on
    ``--format`` template quirks.
    """

    def __init__(self, binary: str = "docker"):
        self.binary = binary

    def list_running_containers(self) -> List[Dict[str, Any]]:
        """Return the inspect documents of every running container."""
        try:
            result = run_command(
                [self.binary, "ps", "-q", "--no-trunc"], capture_output=True, quiet=True
            )
        except FileNotFoundError as e:
            raise RuntimeUnavailable(f"{self.binary} is not installed") from e
        except OSError as e:
            raise RuntimeUnavailable(f"cannot run {self.binary}: {e}") from e
        except subprocess.CalledProcessError as e:
            raise RuntimeUnavailable(command_diagnostic(e)) from e

        container_ids = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not container_ids:
            return []

        try:
            inspected = run_command(
                [self.binary, "inspect"] + container_ids,
                check=False,
                capture_output=True,
            )
        except FileNotFoundError as e:
            raise RuntimeUnavailable(f"{self.binary} is not installed") from e
        except OSError as e:
            raise RuntimeUnavailable(f"cannot run {self.binary}: {e}") from e

        # A container that exits between ps and inspect makes inspect return
        # non-zero while still printing the documents it found.
        try:
            documents = json.loads(inspected.stdout or "[]")
        except ValueError as e:
            raise RuntimeUnavailable(
                (inspected.stderr or "").strip() or f"unreadable inspect output: {e}"
            ) from e
        if not isinstance(documents, list):
            raise RuntimeUnavailable("unexpected inspect output")
        if inspected.returncode != 0:
            logger.debug(f"docker inspect partial failure: {inspected.stderr.strip()}")
        return [doc for doc in documents if isinstance(doc, dict)]

    @staticmethod
    def get_container_label(container: Dict[str, Any], key: str) -> Optional[str]:
        """Return a label value from an inspect document, or None."""
        config = container.get("Config") or {}
        labels = config.get("Labels") or {}
        value = labels.get(key)
        if value is None or not str(value).strip():
            return None
        return str(value)

    def _compose(self, project_dir: str, *args: str) -> subprocess.CompletedProcess:
        return run_command(
            [self.binary, "compose", "--project-directory", project_dir] + list(args),
            capture_output=True,
            quiet=True,
        )

    def pull_project_images(self, project_dir: str) -> subprocess.CompletedProcess:
        """Pull the latest images for every service of a compose project."""
        return self._compose(project_dir, "pull")

    def recreate_project(
        self, project_dir: str, remove_orphans: bool = True
    ) -> subprocess.CompletedProcess:
        """Recreate a compose project's containers; never removes volumes."""
        args = ["up", "-d"]
        if remove_orphans:
            args.append("--remove-orphans")
        return self._compose(project_dir, *args)
