"""Exception hierarchy for server management actions."""

from typing import Optional


class ServerManagerError(Exception):
    """Base class for every error raised by this package."""


class ActionError(ServerManagerError):
    """An action's prerequisite is not met (e.g. Docker is not installed)."""


class RuntimeUnavailable(ServerManagerError):
    """The container runtime cannot be queried at all."""


class ProjectSelectionError(ServerManagerError):
    """A non-interactive selection names no discovered project."""


class ProjectUpdateError(ServerManagerError):
    """
    A single compose project failed to update.

    Attributes:
        step: Which sub-step failed ("missing", "pull" or "recreate").
        working_directory: The project that failed.
        diagnostic: The underlying tool's error output, if any.
    """

    step: str = "update"
    summary: str = "update failed"

    def __init__(self, working_directory: str, diagnostic: Optional[str] = None):
        self.working_directory = working_directory
        self.diagnostic = (diagnostic or "").strip()
        message = f"{self.summary} for {working_directory}"
        if self.diagnostic:
            message = f"{message}: {self.diagnostic}"
        super().__init__(message)


class ProjectNotFound(ProjectUpdateError):
    """The project directory vanished between discovery and update."""

    step = "missing"
    summary = "project directory not found"


class PullFailed(ProjectUpdateError):
    """`docker compose pull` failed."""

    step = "pull"
    summary = "image pull failed"


class RecreateFailed(ProjectUpdateError):
    """`docker compose up -d` failed."""

    step = "recreate"
    summary = "container recreate failed"
