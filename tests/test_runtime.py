import json
import subprocess

import pytest

from server_manager import runtime as runtime_module
from server_manager.errors import RuntimeUnavailable
from server_manager.runtime import DockerCli, command_diagnostic

from tests.conftest import make_container


def test_list_running_containers_parses_inspect_output(monkeypatch, recorder):
    documents = [make_container("/opt/stacks/app1"), make_container(None)]
    recorder.respond(["docker", "ps", "-q", "--no-trunc"], stdout="aaa\nbbb\n")
    recorder.respond(["docker", "inspect", "aaa", "bbb"], stdout=json.dumps(documents))
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    containers = DockerCli().list_running_containers()

    assert containers == documents
    assert recorder.commands == [
        ["docker", "ps", "-q", "--no-trunc"],
        ["docker", "inspect", "aaa", "bbb"],
    ]


def test_no_running_containers_skips_inspect(monkeypatch, recorder):
    recorder.respond(["docker", "ps", "-q", "--no-trunc"], stdout="\n")
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    assert DockerCli().list_running_containers() == []
    assert len(recorder.commands) == 1


def test_partial_inspect_failure_keeps_found_documents(monkeypatch, recorder):
    recorder.respond(["docker", "ps", "-q", "--no-trunc"], stdout="aaa\nbbb\n")
    recorder.respond(
        ["docker", "inspect", "aaa", "bbb"],
        stdout=json.dumps([make_container("/srv/x")]),
        returncode=1,
    )
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    assert len(DockerCli().list_running_containers()) == 1


def test_daemon_down_is_runtime_unavailable(monkeypatch, recorder):
    recorder.respond(["docker", "ps", "-q", "--no-trunc"], returncode=1)
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    with pytest.raises(RuntimeUnavailable):
        DockerCli().list_running_containers()


def test_missing_binary_is_runtime_unavailable(monkeypatch):
    def missing(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(runtime_module, "run_command", missing)

    with pytest.raises(RuntimeUnavailable, match="not installed"):
        DockerCli().list_running_containers()


def test_garbage_inspect_output_is_runtime_unavailable(monkeypatch, recorder):
    recorder.respond(["docker", "ps", "-q", "--no-trunc"], stdout="aaa\n")
    recorder.respond(["docker", "inspect", "aaa"], stdout="not json")
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    with pytest.raises(RuntimeUnavailable):
        DockerCli().list_running_containers()


@pytest.mark.parametrize(
    "container, expected",
    [
        (make_container("/opt/stacks/app1"), "/opt/stacks/app1"),
        (make_container("   "), None),
        (make_container(None), None),
        ({"Config": {"Labels": None}}, None),
        ({}, None),
    ],
)
def test_get_container_label(container, expected):
    key = "com.docker.compose.project.working_dir"
    assert DockerCli.get_container_label(container, key) == expected


def test_compose_commands(monkeypatch, recorder):
    monkeypatch.setattr(runtime_module, "run_command", recorder)
    cli = DockerCli()

    cli.pull_project_images("/opt/stacks/app1")
    cli.recreate_project("/opt/stacks/app1")
    cli.recreate_project("/opt/dockge", remove_orphans=False)

    assert recorder.commands == [
        ["docker", "compose", "--project-directory", "/opt/stacks/app1", "pull"],
        [
            "docker",
            "compose",
            "--project-directory",
            "/opt/stacks/app1",
            "up",
            "-d",
            "--remove-orphans",
        ],
        ["docker", "compose", "--project-directory", "/opt/dockge", "up", "-d"],
    ]


def test_command_diagnostic_prefers_stderr():
    error = subprocess.CalledProcessError(1, ["x"], output="out", stderr=" err \n")
    assert command_diagnostic(error) == "err"
    error = subprocess.CalledProcessError(1, ["x"], output="out", stderr="")
    assert command_diagnostic(error) == "out"
    error = subprocess.CalledProcessError(3, ["x"])
    assert command_diagnostic(error) == "exit status 3"


def test_unexecutable_binary_is_runtime_unavailable(monkeypatch):
    def denied(cmd, **kwargs):
        raise PermissionError(13, "Permission denied", cmd[0])

    monkeypatch.setattr(runtime_module, "run_command", denied)

    with pytest.raises(RuntimeUnavailable, match="cannot run"):
        DockerCli().list_running_containers()


def test_compose_failures_are_left_to_the_caller(monkeypatch, recorder):
    monkeypatch.setattr(runtime_module, "run_command", recorder)

    DockerCli().pull_project_images("/opt/stacks/app1")
    DockerCli().recreate_project("/opt/stacks/app1")

    assert recorder.quiet == [True, True]
