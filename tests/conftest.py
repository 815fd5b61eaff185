import subprocess
from typing import Any, Dict, List, Optional, Sequence

import pytest

from server_manager.config import COMPOSE_WORKING_DIR_LABEL, AppConfig
from server_manager.errors import RuntimeUnavailable
from server_manager.runtime import DockerCli


def make_container(working_dir: Optional[str] = None, **labels: str) -> Dict[str, Any]:
    """Build a minimal `docker inspect` document."""
    all_labels = dict(labels)
    if working_dir is not None:
        all_labels[COMPOSE_WORKING_DIR_LABEL] = working_dir
    return {"Id": f"id-{len(all_labels)}-{working_dir}", "Config": {"Labels": all_labels}}


class FakeRuntime:
    """In-memory stand-in for DockerCli that records compose calls."""

    def __init__(
        self,
        containers: Sequence[Dict[str, Any]] = (),
        fail_pull: Sequence[str] = (),
        fail_recreate: Sequence[str] = (),
        unavailable: bool = False,
    ):
        self.containers = list(containers)
        self.fail_pull = set(fail_pull)
        self.fail_recreate = set(fail_recreate)
        self.unavailable = unavailable
        self.calls: List[tuple] = []

    def list_running_containers(self) -> List[Dict[str, Any]]:
        if self.unavailable:
            raise RuntimeUnavailable("Cannot connect to the Docker daemon")
        return list(self.containers)

    get_container_label = staticmethod(DockerCli.get_container_label)

    def pull_project_images(self, project_dir: str) -> subprocess.CompletedProcess:
        self.calls.append(("pull", project_dir))
        cmd = ["docker", "compose", "--project-directory", project_dir, "pull"]
        if project_dir in self.fail_pull:
            raise subprocess.CalledProcessError(
                1, cmd, output="", stderr="pull access denied for example/app"
            )
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def recreate_project(
        self, project_dir: str, remove_orphans: bool = True
    ) -> subprocess.CompletedProcess:
        self.calls.append(("recreate", project_dir, remove_orphans))
        cmd = ["docker", "compose", "--project-directory", project_dir, "up", "-d"]
        if project_dir in self.fail_recreate:
            raise subprocess.CalledProcessError(
                1, cmd, output="", stderr="port is already allocated"
            )
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def calls_for(self, kind: str) -> List[str]:
        return [call[1] for call in self.calls if call[0] == kind]


class CommandRecorder:
    """Replacement for run_command that records every invocation."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []
        self.quiet: List[bool] = []
        self.responses: Dict[tuple, tuple] = {}

    def respond(self, cmd: Sequence[str], stdout: str = "", returncode: int = 0) -> None:
        self.responses[tuple(cmd)] = (stdout, returncode)

    def __call__(
        self,
        cmd: List[str],
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[int] = None,
        quiet: bool = False,
    ) -> subprocess.CompletedProcess:
        self.commands.append(list(cmd))
        self.envs.append(env)
        self.quiet.append(quiet)
        stdout, returncode = self.responses.get(tuple(cmd), ("", 0))
        if check and returncode != 0:
            raise subprocess.CalledProcessError(returncode, cmd, output=stdout, stderr="boom")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")


class ScriptedPrompt:
    """Answers prompts from a fixed list and remembers the questions."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.questions: List[str] = []

    def __call__(self, question: str, *args: Any, **kwargs: Any) -> str:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {question}")
        return self.answers.pop(0)


@pytest.fixture
def recorder() -> CommandRecorder:
    return CommandRecorder()


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        log_file=str(tmp_path / "server_manager.log"),
        stacks_dir=str(tmp_path / "stacks"),
        dockge_dir=str(tmp_path / "dockge"),
    )
