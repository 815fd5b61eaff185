import subprocess

import pytest

from server_manager import commands
from server_manager.commands import read_os_release, run_command, ubuntu_codename


class FakeRun:
    def __init__(self, returncode=0, stdout=""):
        self.returncode = returncode
        self.stdout = stdout
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if kwargs.get("check") and self.returncode != 0:
            raise subprocess.CalledProcessError(self.returncode, cmd, stderr="failed")
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout)


def test_run_command_merges_environment(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(commands.subprocess, "run", fake)
    monkeypatch.setenv("PATH", "/usr/bin")

    run_command(["apt-get", "upgrade", "-y"], env={"DEBIAN_FRONTEND": "noninteractive"})

    cmd, kwargs = fake.calls[0]
    assert cmd == ["apt-get", "upgrade", "-y"]
    assert kwargs["env"]["DEBIAN_FRONTEND"] == "noninteractive"
    assert kwargs["env"]["PATH"] == "/usr/bin"
    assert kwargs["check"] is True
    assert kwargs["text"] is True


def test_run_command_reraises_failures(monkeypatch):
    monkeypatch.setattr(commands.subprocess, "run", FakeRun(returncode=100))

    with pytest.raises(subprocess.CalledProcessError):
        run_command(["apt-get", "update"])


def test_package_installed(monkeypatch):
    fake = FakeRun(stdout="Package: curl\nStatus: install ok installed\n")
    monkeypatch.setattr(commands.subprocess, "run", fake)
    assert commands.package_installed("curl")

    monkeypatch.setattr(commands.subprocess, "run", FakeRun(returncode=1))
    assert not commands.package_installed("podman-docker")


def test_service_active(monkeypatch):
    monkeypatch.setattr(commands.subprocess, "run", FakeRun(returncode=3))
    assert not commands.service_active("docker")


def test_docker_available_requires_binary(monkeypatch):
    monkeypatch.setattr(commands, "command_exists", lambda cmd: False)
    assert not commands.docker_available()


def test_read_os_release(tmp_path):
    release = tmp_path / "os-release"
    release.write_text(
        '# comment\nNAME="Ubuntu"\nVERSION_CODENAME=noble\nUBUNTU_CODENAME=noble\n\n'
    )

    values = read_os_release(str(release))

    assert values["NAME"] == "Ubuntu"
    assert ubuntu_codename(str(release)) == "noble"


def test_ubuntu_codename_falls_back_to_version_codename(tmp_path):
    release = tmp_path / "os-release"
    release.write_text("VERSION_CODENAME='jammy'\n")
    assert ubuntu_codename(str(release)) == "jammy"


def test_ubuntu_codename_missing(tmp_path):
    with pytest.raises(ValueError):
        ubuntu_codename(str(tmp_path / "absent"))


class FailingRun:
    def __init__(self, stderr):
        self.stderr = stderr

    def __call__(self, cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, output="", stderr=self.stderr)


def test_failure_output_with_brackets_keeps_original_error(monkeypatch):
    monkeypatch.setattr(
        commands.subprocess, "run", FailingRun("env file [/opt/stacks/app1/.env] not found")
    )

    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        run_command(["docker", "compose", "pull"], capture_output=True)
    assert "[/opt/stacks/app1/.env]" in excinfo.value.stderr


def test_quiet_failure_leaves_reporting_to_caller(monkeypatch):
    monkeypatch.setattr(commands.subprocess, "run", FailingRun("no such image"))

    with commands.console.capture() as capture:
        with pytest.raises(subprocess.CalledProcessError):
            run_command(["docker", "compose", "pull"], capture_output=True, quiet=True)
    assert "no such image" not in capture.get()

    with commands.console.capture() as capture:
        with pytest.raises(subprocess.CalledProcessError):
            run_command(["docker", "compose", "pull"], capture_output=True)
    assert "no such image" in capture.get()
