"""
Docker Compose fleet updater.

Discovers every compose project with a running container, lets the operator
pick one or all of them, and re-applies each project's declared state:
pull newer images, then recreate containers and drop orphaned services.
Projects are updated one at a time; a failure in one never stops the rest.
"""

import logging
import os
import posixpath
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from rich import box
from rich.markup import escape
from rich.table import Table

from server_manager.config import COMPOSE_WORKING_DIR_LABEL
from server_manager.errors import (
    ProjectNotFound,
    ProjectSelectionError,
    ProjectUpdateError,
    PullFailed,
    RecreateFailed,
)
from server_manager.runtime import DockerCli, command_diagnostic
from server_manager.ui import (
    NordColors,
    ask,
    console,
    print_error,
    print_section,
    print_step,
    print_success,
    print_warning,
    spinner,
)

logger = logging.getLogger("server_manager")


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
@dataclass(frozen=True)
class ManagedProject:
    """A compose project identified by its working directory."""

    working_directory: str

    @property
    def name(self) -> str:
        return posixpath.basename(self.working_directory) or self.working_directory


@dataclass(frozen=True)
class AllProjects:
    """Update every discovered project."""


@dataclass(frozen=True)
class SingleProject:
    """Update exactly one project."""

    project: ManagedProject


@dataclass(frozen=True)
class Cancelled:
    """The operator declined to update anything."""


UpdatePlan = Union[AllProjects, SingleProject, Cancelled]


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of updating one project; ``error`` is None on success."""

    project: ManagedProject
    error: Optional[ProjectUpdateError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def step(self) -> Optional[str]:
        return self.error.step if self.error else None

    @property
    def reason(self) -> Optional[str]:
        return self.error.diagnostic if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.project.name,
            "working_directory": self.project.working_directory,
            "succeeded": self.succeeded,
            "step": self.step,
            "reason": self.reason,
        }


# ----------------------------------------------------------------
# Plan Helpers
# ----------------------------------------------------------------
def normalize_project_dir(value: str) -> Optional[str]:
    """
    Normalize a working-directory label value.

    Trailing slashes and redundant separators are collapsed; case is kept.
    Relative paths are not something compose writes, so they yield None.
    """
    value = value.strip()
    if not value.startswith("/"):
        return None
    return "/" + posixpath.normpath(value).lstrip("/")


def plan_targets(
    plan: UpdatePlan, projects: Sequence[ManagedProject]
) -> List[ManagedProject]:
    """Return the projects a plan applies to, in discovery order."""
    if isinstance(plan, AllProjects):
        return list(projects)
    if isinstance(plan, SingleProject):
        return [plan.project]
    return []


def select_by_name(projects: Sequence[ManagedProject], name: str) -> UpdatePlan:
    """
    Build a SingleProject plan from a project name or working directory.

    Raises ProjectSelectionError when nothing or more than one project matches.
    """
    matches = [
        p for p in projects if name in (p.name, p.working_directory)
    ]
    if not matches:
        raise ProjectSelectionError(f"No running compose project named '{name}'")
    if len(matches) > 1:
        dirs = ", ".join(p.working_directory for p in matches)
        raise ProjectSelectionError(f"'{name}' is ambiguous: {dirs}")
    return SingleProject(matches[0])


def interpret_choice(raw: str, projects: Sequence[ManagedProject]) -> UpdatePlan:
    """
    Turn one line of operator input into a plan.

    Menu layout: 1 is Update All, 2..k+1 are the projects, k+2 is Cancel.
    Keywords and project names are accepted too. Raises ValueError with a
    message suitable for the operator when the input matches nothing.
    """
    choice = raw.strip()
    if not choice:
        raise ValueError("Please enter a choice.")

    lowered = choice.lower()
    if lowered in ("a", "all", "update all"):
        return AllProjects()
    if lowered in ("c", "q", "cancel", "quit"):
        return Cancelled()

    if choice.isdigit():
        index = int(choice)
        if index == 1:
            return AllProjects()
        if 2 <= index <= len(projects) + 1:
            return SingleProject(projects[index - 2])
        if index == len(projects) + 2:
            return Cancelled()
        raise ValueError(f"Choice {index} is out of range (1-{len(projects) + 2}).")

    try:
        return select_by_name(projects, choice)
    except ProjectSelectionError as e:
        if "ambiguous" in str(e):
            raise ValueError(f"{e}. Enter its number instead.") from e
        raise ValueError(f"Invalid selection '{choice}'.") from e


# ----------------------------------------------------------------
# Fleet Updater
# ----------------------------------------------------------------
class ComposeFleetUpdater:
    """
    Discover running compose projects and update them in place.

    Args:
        runtime: Container runtime client (DockerCli by default).
        label: Container label that names a project's working directory.
        prompt: Reads one line of operator input for a question.
        path_exists: Checks that a project directory is still present.
    """

    def __init__(
        self,
        runtime: Optional[DockerCli] = None,
        label: str = COMPOSE_WORKING_DIR_LABEL,
        prompt: Optional[Callable[[str], str]] = None,
        path_exists: Callable[[str], bool] = os.path.isdir,
    ):
        self.runtime = runtime or DockerCli()
        self.label = label
        self.prompt = prompt or ask
        self.path_exists = path_exists

    def discover_projects(self) -> Tuple[ManagedProject, ...]:
        """
        Return the distinct compose projects that have a running container.

        Raises RuntimeUnavailable if the runtime cannot be queried. An empty
        tuple means nothing is running under compose.
        """
        directories = set()
        for container in self.runtime.list_running_containers():
            value = self.runtime.get_container_label(container, self.label)
            if value is None:
                continue
            directory = normalize_project_dir(value)
            if directory is None:
                logger.debug(f"Ignoring relative compose directory label: {value}")
                continue
            directories.add(directory)
        return tuple(ManagedProject(d) for d in sorted(directories))

    def _render_menu(self, projects: Sequence[ManagedProject]) -> None:
        table = Table(
            show_header=True,
            header_style=f"bold {NordColors.FROST_1}",
            box=box.ROUNDED,
            title="Running Compose Applications",
            padding=(0, 1),
        )
        table.add_column("#", style=f"bold {NordColors.FROST_4}", justify="right")
        table.add_column("Application", style=f"bold {NordColors.FROST_1}")
        table.add_column("Directory", style=NordColors.SNOW_STORM_1)
        table.add_row("1", f"[{NordColors.GREEN}]Update All[/]", "")
        for idx, project in enumerate(projects, 2):
            table.add_row(
                str(idx), escape(project.name), escape(project.working_directory)
            )
        table.add_row(str(len(projects) + 2), f"[{NordColors.RED}]Cancel[/]", "")
        console.print(table)

    def present_selection(self, projects: Sequence[ManagedProject]) -> UpdatePlan:
        """Ask the operator what to update until the answer is valid."""
        self._render_menu(projects)
        while True:
            raw = self.prompt("Select an application to update")
            try:
                return interpret_choice(raw, projects)
            except ValueError as e:
                print_error(f"{e} Please try again.")

    def _apply(self, project: ManagedProject) -> None:
        directory = project.working_directory
        if not self.path_exists(directory):
            raise ProjectNotFound(directory, "directory no longer exists")

        print_step("Pulling latest images...")
        try:
            with spinner(f"Pulling images for {project.name}"):
                self.runtime.pull_project_images(directory)
        except subprocess.CalledProcessError as e:
            raise PullFailed(directory, command_diagnostic(e)) from e
        except OSError as e:
            raise PullFailed(directory, str(e)) from e

        print_step("Recreating containers with new images...")
        try:
            with spinner(f"Recreating {project.name}"):
                self.runtime.recreate_project(directory, remove_orphans=True)
        except subprocess.CalledProcessError as e:
            raise RecreateFailed(directory, command_diagnostic(e)) from e
        except OSError as e:
            raise RecreateFailed(directory, str(e)) from e

    def apply_update(self, project: ManagedProject) -> UpdateOutcome:
        """Pull then recreate one project, reporting rather than raising failures."""
        print_section(f"Updating application: {project.name}")
        print_step(f"Directory: {project.working_directory}")
        try:
            self._apply(project)
        except ProjectUpdateError as e:
            logger.debug(f"Update of {project.working_directory} failed: {e}")
            print_error(f"{project.name}: {e.summary}: {e.diagnostic}")
            return UpdateOutcome(project, e)
        print_success(f"Update for {project.name} complete")
        return UpdateOutcome(project)

    def print_summary(self, outcomes: Sequence[UpdateOutcome]) -> None:
        """Display a results table for a batch."""
        table = Table(
            title="Compose Update Results",
            title_style=f"bold {NordColors.FROST_2}",
            border_style=NordColors.FROST_3,
            box=box.ROUNDED,
            expand=True,
        )
        table.add_column("Application", style=f"bold {NordColors.FROST_1}")
        table.add_column("Directory", style=NordColors.SNOW_STORM_1)
        table.add_column("Result")
        for outcome in outcomes:
            status = (
                f"[{NordColors.GREEN}]Success[/]"
                if outcome.succeeded
                else f"[{NordColors.RED}]Failed ({outcome.step})[/]"
            )
            table.add_row(
                escape(outcome.project.name),
                escape(outcome.project.working_directory),
                status,
            )
        console.print(table)

    def run(
        self,
        select: Optional[Callable[[Sequence[ManagedProject]], UpdatePlan]] = None,
    ) -> List[UpdateOutcome]:
        """
        Discover, select and apply.

        ``select`` replaces the interactive menu, e.g. for ``--all``.
        RuntimeUnavailable propagates before any project is touched.
        """
        print_step("Searching for running Docker Compose applications...")
        projects = self.discover_projects()
        if not projects:
            print_warning("No running Docker Compose applications found. Nothing to update.")
            return []

        plan = (select or self.present_selection)(projects)
        if isinstance(plan, Cancelled):
            print_warning("Update cancelled.")
            return []

        outcomes = [self.apply_update(project) for project in plan_targets(plan, projects)]
        self.print_summary(outcomes)
        return outcomes
