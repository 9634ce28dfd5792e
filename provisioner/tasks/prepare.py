"""Development workstation preparation."""

from pathlib import Path

from ..data_loader import get_prepare_profile
from ..errors import ToolFailure
from ..installer import InstallerKind, PackageSpec
from ..prompts import OH_MY_BASH
from ..runner import Step, StepOutcome
from .base import Task, TaskContext, install_step


class PrepareTask(Task):
    name = "prepare"
    title = "Prepare system"

    def __init__(self):
        self.profile = get_prepare_profile()

    def apt_specs(self, ctx: TaskContext) -> list[PackageSpec]:
        specs = [
            PackageSpec(name, InstallerKind.APT, no_recommends=self.profile.apt_no_recommends)
            for name in self.profile.apt
        ]
        return specs + self.extra_packages(ctx)

    def snap_specs(self) -> list[PackageSpec]:
        return [
            PackageSpec(name, InstallerKind.SNAP, classic=self.profile.snap_classic)
            for name in self.profile.snap
        ]

    def packages(self, ctx: TaskContext) -> dict[str, list[PackageSpec]]:
        return {"apt": self.apt_specs(ctx), "snap": self.snap_specs()}

    def summary(self, ctx: TaskContext) -> list[str]:
        lines = [
            "This will install essential development tools and dependencies:",
            "1. Update package lists and upgrade the system",
            "2. Install required development tools and libraries",
            "3. Install Oh My Bash",
            "",
            "Packages:",
        ]
        lines += [f"   - {spec.label}" for spec in self.apt_specs(ctx) + self.snap_specs()]
        return lines

    def build_steps(self, ctx: TaskContext) -> list[Step]:
        return [
            Step("Update system", lambda: self.update_system(ctx)),
            Step("Install APT packages", lambda: install_step(ctx, self.apt_specs(ctx))),
            Step("Install Snap packages", lambda: install_step(ctx, self.snap_specs())),
            Step("Install Oh My Bash", lambda: self.install_oh_my_bash(ctx)),
        ]

    async def update_system(self, ctx: TaskContext) -> StepOutcome:
        timeout = ctx.settings.timeouts.install
        ctx.reporter.info("Updating package lists...")
        await ctx.invoker.invoke(["apt-get", "update"], timeout=timeout, privileged=True)
        ctx.reporter.success("Package lists updated successfully.")

        ctx.reporter.info("Upgrading installed packages...")
        await ctx.invoker.invoke(
            ["apt-get", "upgrade", "-y"], timeout=timeout, privileged=True, stream=True
        )
        ctx.reporter.success("System upgraded successfully.")
        return StepOutcome.success()

    async def install_oh_my_bash(self, ctx: TaskContext) -> StepOutcome:
        target = Path(self.profile.oh_my_bash.directory).expanduser()
        if target.is_dir():
            ctx.reporter.success("Oh My Bash is already installed. Skipping...")
            return StepOutcome.already_present(str(target))

        if not ctx.decisions.resolve(OH_MY_BASH):
            ctx.reporter.warn("Skipping Oh My Bash.")
            return StepOutcome.skipped()

        ctx.reporter.info("Installing Oh My Bash...")
        download = await ctx.invoker.query(
            ["curl", "-fsSL", self.profile.oh_my_bash.installer_url],
            timeout=ctx.settings.timeouts.download,
        )
        if not download.ok:
            raise ToolFailure(download.argv, download.exit_code, download.output)

        await ctx.invoker.invoke(
            ["bash", "-s", "--", "--unattended"],
            input=download.output,
            timeout=ctx.settings.timeouts.install,
        )
        ctx.reporter.success("Oh My Bash installed successfully!")
        return StepOutcome.success()


__all__ = ["PrepareTask"]
