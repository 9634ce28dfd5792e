"""Tests for the Docker install task."""

import asyncio
from dataclasses import replace
from unittest.mock import patch

import pytest

from provisioner.runner import RunState, StepStatus
from provisioner.tasks import DockerTask, run_task
from provisioner.tasks import docker as docker_module
from provisioner.tasks.docker import docker_source_line, parse_os_release, ubuntu_codename
from tests.conftest import FakeInvoker

OS_RELEASE_TEXT = """PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
UBUNTU_CODENAME=noble
"""


@pytest.fixture
def docker_task(tmp_path, monkeypatch):
    """DockerTask whose keyring, source list and os-release live in tmp_path."""
    os_release = tmp_path / "os-release"
    os_release.write_text(OS_RELEASE_TEXT)
    monkeypatch.setattr(docker_module, "OS_RELEASE", os_release)

    task = DockerTask()
    task.profile = replace(
        task.profile,
        keyring_dir=str(tmp_path / "keyrings"),
        keyring=str(tmp_path / "keyrings" / "docker.asc"),
        source_list=str(tmp_path / "docker.list"),
    )
    return task


class TestOsRelease:
    def test_parse(self):
        values = parse_os_release(OS_RELEASE_TEXT)
        assert values["NAME"] == "Ubuntu"
        assert values["VERSION_ID"] == "24.04"

    def test_ignores_comments_and_blank_lines(self):
        values = parse_os_release("# comment\n\nID=ubuntu\nnot a pair\n")
        assert values == {"ID": "ubuntu"}

    def test_ubuntu_codename_preferred(self):
        assert ubuntu_codename({"UBUNTU_CODENAME": "jammy", "VERSION_CODENAME": "vera"}) == "jammy"

    def test_falls_back_to_version_codename(self):
        assert ubuntu_codename({"VERSION_CODENAME": "noble"}) == "noble"

    def test_no_codename(self):
        assert ubuntu_codename({"ID": "ubuntu"}) is None


def test_docker_source_line():
    line = docker_source_line(
        "amd64", "noble", "https://download.docker.com/linux/ubuntu", "/etc/apt/keyrings/docker.asc"
    )
    assert line == (
        "deb [arch=amd64 signed-by=/etc/apt/keyrings/docker.asc] "
        "https://download.docker.com/linux/ubuntu noble stable"
    )


class TestRemoveConflicts:
    def test_nothing_installed_asks_nothing(self, make_context, docker_task):
        invoker = FakeInvoker()
        ctx, reader = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.remove_conflicts(ctx))

        assert outcome.status == StepStatus.ALREADY_PRESENT
        assert reader.questions == []
        assert invoker.history == []

    def test_removes_only_installed_packages(self, make_context, docker_task):
        invoker = FakeInvoker(installed={"docker.io", "runc"})
        ctx, _ = make_context(invoker=invoker, replies=["y"])

        outcome = asyncio.run(docker_task.remove_conflicts(ctx))

        assert outcome.status == StepStatus.SUCCESS
        assert invoker.commands() == ["apt-get remove -y docker.io", "apt-get remove -y runc"]

    def test_declined_removes_nothing(self, make_context, docker_task):
        invoker = FakeInvoker(installed={"docker.io"})
        ctx, _ = make_context(invoker=invoker, replies=["n"])

        outcome = asyncio.run(docker_task.remove_conflicts(ctx))

        assert outcome.status == StepStatus.SKIPPED
        assert invoker.history == []


class TestRepository:
    def test_key_download_when_missing(self, make_context, docker_task, tmp_path):
        invoker = FakeInvoker(installed={"ca-certificates", "curl"})
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.setup_repo_key(ctx))

        assert outcome.status == StepStatus.SUCCESS
        assert invoker.ran("curl", "-fsSL", "https://download.docker.com/linux/ubuntu/gpg")
        assert invoker.ran("chmod", "a+r", str(tmp_path / "keyrings" / "docker.asc"))

    def test_key_present_is_not_downloaded(self, make_context, docker_task, tmp_path):
        (tmp_path / "keyrings").mkdir()
        (tmp_path / "keyrings" / "docker.asc").write_text("key")
        invoker = FakeInvoker(installed={"ca-certificates", "curl"})
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.setup_repo_key(ctx))

        assert outcome.status == StepStatus.ALREADY_PRESENT
        assert not invoker.ran("curl")

    def test_add_repo_writes_source_line(self, make_context, docker_task, tmp_path):
        invoker = FakeInvoker(responses={("dpkg", "--print-architecture"): "amd64"})
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.add_repo(ctx))

        assert outcome.status == StepStatus.SUCCESS
        source_list = str(tmp_path / "docker.list")
        written = invoker.inputs[f"tee {source_list}"]
        assert written.startswith("deb [arch=amd64 signed-by=")
        assert written.rstrip().endswith("noble stable")
        assert invoker.commands()[-1] == "apt-get update"

    def test_add_repo_skips_existing_line(self, make_context, docker_task, tmp_path):
        line = docker_source_line(
            "amd64", "noble", docker_task.profile.repo_url, docker_task.profile.keyring
        )
        (tmp_path / "docker.list").write_text(line + "\n")
        invoker = FakeInvoker(responses={("dpkg", "--print-architecture"): "amd64"})
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.add_repo(ctx))

        assert outcome.status == StepStatus.ALREADY_PRESENT
        assert invoker.history == []


class TestGroupAndReboot:
    def test_user_added_to_group(self, make_context, docker_task, monkeypatch):
        monkeypatch.setenv("SUDO_USER", "alice")
        invoker = FakeInvoker(responses={("id", "-nG", "alice"): "alice sudo"})
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.add_user_to_group(ctx))

        assert outcome.status == StepStatus.SUCCESS
        assert invoker.commands() == ["groupadd docker", "usermod -aG docker alice"]

    def test_user_already_member(self, make_context, docker_task, monkeypatch):
        monkeypatch.setenv("SUDO_USER", "alice")
        invoker = FakeInvoker(
            responses={
                ("getent", "group", "docker"): "docker:x:999:alice",
                ("id", "-nG", "alice"): "alice sudo docker",
            }
        )
        ctx, _ = make_context(invoker=invoker)

        outcome = asyncio.run(docker_task.add_user_to_group(ctx))

        assert outcome.status == StepStatus.ALREADY_PRESENT
        assert invoker.history == []

    def test_reboot_not_done_unattended(self, make_context, docker_task):
        invoker = FakeInvoker()
        ctx, _ = make_context(invoker=invoker, assume_yes=True)

        outcome = asyncio.run(docker_task.ask_reboot(ctx))

        assert outcome.status == StepStatus.SKIPPED
        assert not invoker.ran("reboot")

    def test_reboot_when_accepted(self, make_context, docker_task):
        invoker = FakeInvoker()
        ctx, _ = make_context(invoker=invoker, replies=["y"])

        asyncio.run(docker_task.ask_reboot(ctx))

        assert invoker.history == [["reboot"]]


class TestFullRun:
    def test_unattended_install(self, make_context, docker_task, monkeypatch):
        monkeypatch.setenv("SUDO_USER", "alice")
        invoker = FakeInvoker(
            installed={"ca-certificates", "curl"},
            responses={("dpkg", "--print-architecture"): "amd64"},
        )
        ctx, _ = make_context(invoker=invoker, assume_yes=True)

        with patch.object(docker_module, "group_active", return_value=False):
            result = asyncio.run(run_task(docker_task, ctx))

        assert result.completed
        assert result.warnings == []
        assert invoker.ran("apt-get", "install", "-y", "docker-ce")
        assert ["docker", "run", "--rm", "hello-world"] in invoker.privileged
        assert not invoker.ran("reboot")

    def test_failed_docker_install_stops_before_test(self, make_context, docker_task):
        invoker = FakeInvoker(
            installed={"ca-certificates", "curl"},
            responses={("dpkg", "--print-architecture"): "amd64"},
            failing=[("apt-get", "install", "-y", "docker-ce")],
        )
        ctx, _ = make_context(invoker=invoker, assume_yes=True)

        result = asyncio.run(run_task(docker_task, ctx))

        assert result.state == RunState.ABORTED
        assert result.failed_step == "Install Docker"
        assert not invoker.ran("docker")
        assert not invoker.ran("usermod")

    def test_declined_summary_runs_nothing(self, make_context, docker_task):
        invoker = FakeInvoker()
        ctx, reader = make_context(invoker=invoker, replies=["n"])

        result = asyncio.run(run_task(docker_task, ctx))

        assert result.state == RunState.ABORTED
        assert result.failed_step == "summary"
        assert invoker.history == []
        assert invoker.queries == []
        assert len(reader.questions) == 1
