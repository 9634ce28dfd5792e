"""Docker Engine installation from the upstream APT repository."""

import getpass
import grp
import os
from pathlib import Path

from ..data_loader import get_docker_profile
from ..errors import ToolFailure
from ..installer import PackageSpec
from ..prompts import REBOOT, REMOVE_CONFLICTS
from ..runner import Step, StepOutcome
from .base import Task, TaskContext, install_step

OS_RELEASE = Path("/etc/os-release")


def parse_os_release(text: str) -> dict[str, str]:
    """Parse KEY=value lines of an os-release file."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def ubuntu_codename(values: dict[str, str]) -> str | None:
    return values.get("UBUNTU_CODENAME") or values.get("VERSION_CODENAME") or None


def docker_source_line(arch: str, codename: str, repo_url: str, keyring: str) -> str:
    return f"deb [arch={arch} signed-by={keyring}] {repo_url} {codename} stable"


def current_user() -> str:
    return os.environ.get("SUDO_USER") or os.environ.get("USER") or getpass.getuser()


def group_active(group: str) -> bool:
    """True if this process already carries the group's gid."""
    try:
        return grp.getgrnam(group).gr_gid in os.getgroups()
    except KeyError:
        return False


class DockerTask(Task):
    name = "docker-install"
    title = "Install Docker"

    def __init__(self):
        self.profile = get_docker_profile()

    def docker_specs(self, ctx: TaskContext) -> list[PackageSpec]:
        return [PackageSpec(name) for name in self.profile.packages] + self.extra_packages(ctx)

    def packages(self, ctx: TaskContext) -> dict[str, list[PackageSpec]]:
        return {
            "conflicting (removed)": [PackageSpec(n) for n in self.profile.conflicting],
            "prerequisites": [PackageSpec(n) for n in self.profile.prerequisites],
            "docker": self.docker_specs(ctx),
        }

    def summary(self, ctx: TaskContext) -> list[str]:
        return [
            "This will install Docker and set up the docker group:",
            "1. Remove conflicting Docker-related packages",
            "2. Set up the Docker repository and install Docker components",
            "3. Add your user to the docker group",
            "4. Test the Docker installation",
            "5. Optionally reboot to apply group changes",
            "",
            "Requires: curl, build-essential, Ubuntu",
        ]

    def build_steps(self, ctx: TaskContext) -> list[Step]:
        return [
            Step("Remove conflicting packages", lambda: self.remove_conflicts(ctx)),
            Step("Set up repository key", lambda: self.setup_repo_key(ctx), fatal_on_failure=True),
            Step("Add Docker repository", lambda: self.add_repo(ctx), fatal_on_failure=True),
            Step(
                "Install Docker",
                lambda: install_step(ctx, self.docker_specs(ctx)),
                fatal_on_failure=True,
            ),
            Step("Add user to docker group", lambda: self.add_user_to_group(ctx)),
            Step("Test Docker installation", lambda: self.test_docker(ctx), fatal_on_failure=True),
            Step("Reboot", lambda: self.ask_reboot(ctx)),
        ]

    async def remove_conflicts(self, ctx: TaskContext) -> StepOutcome:
        installed = [
            name
            for name in self.profile.conflicting
            if await ctx.installer.is_present(PackageSpec(name))
        ]
        if not installed:
            ctx.reporter.success("No conflicting packages installed.")
            return StepOutcome.already_present()

        ctx.reporter.info(f"Conflicting packages found: {', '.join(installed)}")
        if not ctx.decisions.resolve(REMOVE_CONFLICTS):
            ctx.reporter.warn("Operation skipped. No packages were removed.")
            return StepOutcome.skipped()

        failed = []
        for name in installed:
            try:
                await ctx.invoker.invoke(
                    ["apt-get", "remove", "-y", name],
                    timeout=ctx.settings.timeouts.install,
                    privileged=True,
                )
            except ToolFailure:
                failed.append(name)

        if failed:
            return StepOutcome.failed(f"failed to remove: {', '.join(failed)}")
        ctx.reporter.success("Conflicting packages removed successfully.")
        return StepOutcome.success()

    async def setup_repo_key(self, ctx: TaskContext) -> StepOutcome:
        timeouts = ctx.settings.timeouts
        try:
            await ctx.invoker.invoke(["apt-get", "update"], timeout=timeouts.install, privileged=True)
        except ToolFailure as e:
            ctx.reporter.warn(f"Package list update failed: {e}")

        prereq = await install_step(ctx, [PackageSpec(n) for n in self.profile.prerequisites])
        if prereq.is_failure:
            ctx.reporter.warn(prereq.reason or "prerequisites failed")

        keyring = Path(self.profile.keyring)
        if keyring.exists():
            ctx.reporter.success(f"Docker GPG key already present at {keyring}.")
            return StepOutcome.already_present(str(keyring))

        await ctx.invoker.invoke(
            ["install", "-m", "0755", "-d", self.profile.keyring_dir], privileged=True
        )
        ctx.reporter.info("Downloading Docker GPG key...")
        await ctx.invoker.invoke(
            ["curl", "-fsSL", self.profile.gpg_url, "-o", self.profile.keyring],
            timeout=timeouts.download,
            privileged=True,
        )
        await ctx.invoker.invoke(["chmod", "a+r", self.profile.keyring], privileged=True)
        ctx.reporter.success("Docker GPG key downloaded successfully.")
        return StepOutcome.success()

    async def add_repo(self, ctx: TaskContext) -> StepOutcome:
        arch_result = await ctx.invoker.query(["dpkg", "--print-architecture"])
        if not arch_result.ok or not arch_result.output:
            raise ToolFailure(arch_result.argv, arch_result.exit_code, arch_result.output)

        try:
            codename = ubuntu_codename(parse_os_release(OS_RELEASE.read_text()))
        except OSError as e:
            return StepOutcome.failed(f"cannot read {OS_RELEASE}: {e}")
        if not codename:
            return StepOutcome.failed(f"no release codename in {OS_RELEASE}")

        line = docker_source_line(
            arch_result.output.strip(), codename, self.profile.repo_url, self.profile.keyring
        )
        source_list = Path(self.profile.source_list)
        if source_list.exists() and source_list.read_text().strip() == line:
            ctx.reporter.success("Docker repository already configured.")
            return StepOutcome.already_present(str(source_list))

        ctx.reporter.info("Adding Docker repository...")
        await ctx.invoker.invoke(
            ["tee", str(source_list)], input=line + "\n", privileged=True
        )
        ctx.reporter.info("Updating package lists...")
        await ctx.invoker.invoke(
            ["apt-get", "update"], timeout=ctx.settings.timeouts.install, privileged=True
        )
        ctx.reporter.success("Docker repository added successfully.")
        return StepOutcome.success()

    async def add_user_to_group(self, ctx: TaskContext) -> StepOutcome:
        group = self.profile.group
        user = current_user()

        exists = await ctx.invoker.query(["getent", "group", group])
        if exists.ok:
            ctx.reporter.info(f"Group '{group}' already exists.")
        else:
            await ctx.invoker.invoke(["groupadd", group], privileged=True)
            ctx.reporter.success(f"Group '{group}' created.")

        membership = await ctx.invoker.query(["id", "-nG", user])
        if membership.ok and group in membership.output.split():
            ctx.reporter.success(f"{user} is already in the '{group}' group.")
            return StepOutcome.already_present()

        await ctx.invoker.invoke(["usermod", "-aG", group, user], privileged=True)
        ctx.reporter.success(f"User {user} added to the '{group}' group.")
        ctx.reporter.detail(f"Log out and back in, or run 'newgrp {group}', to use docker without sudo.")
        return StepOutcome.success()

    async def test_docker(self, ctx: TaskContext) -> StepOutcome:
        ctx.reporter.info("Testing Docker installation...")
        await ctx.invoker.invoke(
            ["docker", "run", "--rm", self.profile.test_image],
            timeout=ctx.settings.timeouts.download,
            privileged=not group_active(self.profile.group),
        )
        ctx.reporter.success("Docker is working correctly!")
        return StepOutcome.success()

    async def ask_reboot(self, ctx: TaskContext) -> StepOutcome:
        if not ctx.decisions.resolve(REBOOT):
            ctx.reporter.info("Please reboot the system later for the changes to take effect.")
            return StepOutcome.skipped("reboot postponed")

        ctx.reporter.warn("Rebooting the system...")
        await ctx.invoker.invoke(["reboot"], privileged=True)
        return StepOutcome.success()


__all__ = [
    "DockerTask",
    "parse_os_release",
    "ubuntu_codename",
    "docker_source_line",
]
