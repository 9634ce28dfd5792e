"""Shared task plumbing: context, task interface and the top-level run."""

import logging
from dataclasses import dataclass

from ..config import Settings
from ..execution import ToolInvoker
from ..installer import InstallerKind, PackageInstaller, PackageSpec, InstallStatus, summarize
from ..prompts import PROCEED, Decisions
from ..reporting import Reporter
from ..runner import RunResult, Step, StepOutcome, StepRunner

_logging = logging.getLogger(__name__)


@dataclass
class TaskContext:
    settings: Settings
    invoker: ToolInvoker
    installer: PackageInstaller
    decisions: Decisions
    reporter: Reporter


class Task:
    """A named provisioning program: a summary plus an ordered step list."""

    name: str = ""
    title: str = ""

    def summary(self, ctx: TaskContext) -> list[str]:
        raise NotImplementedError

    def build_steps(self, ctx: TaskContext) -> list[Step]:
        raise NotImplementedError

    def packages(self, ctx: TaskContext) -> dict[str, list[PackageSpec]]:
        """Configured packages grouped by purpose, for listing."""
        return {}

    def extra_packages(self, ctx: TaskContext) -> list[PackageSpec]:
        return [
            PackageSpec(name, InstallerKind.APT)
            for name in ctx.settings.extra_packages.get(self.name, [])
        ]


async def install_step(ctx: TaskContext, specs: list[PackageSpec]) -> StepOutcome:
    """Ensure every spec is installed; failures are reported, not raised."""
    results = await ctx.installer.ensure_all(specs)
    grouped = summarize(results)
    failed = grouped[InstallStatus.FAILED]
    if failed:
        return StepOutcome.failed(f"failed to install: {', '.join(failed)}")
    if len(grouped[InstallStatus.ALREADY_PRESENT]) == len(results):
        return StepOutcome.already_present("all packages present")
    return StepOutcome.success(
        f"{len(grouped[InstallStatus.INSTALLED])} installed, "
        f"{len(grouped[InstallStatus.SKIPPED])} skipped"
    )


async def run_task(task: Task, ctx: TaskContext) -> RunResult:
    """Show the summary, confirm once, then run the task's steps in order."""
    runner = StepRunner(ctx.reporter)
    runner.begin_prompting()

    ctx.reporter.banner(task.title, task.summary(ctx))
    if not ctx.decisions.resolve(PROCEED):
        ctx.reporter.error("Installation aborted.")
        return runner.abort("summary", "user declined")

    steps = task.build_steps(ctx)
    _logging.debug(f"{task.name}: {len(steps)} steps")
    result = await runner.run(steps)

    if result.completed:
        if result.warnings:
            ctx.reporter.warn(f"Finished with warnings in: {', '.join(result.warnings)}")
        else:
            ctx.reporter.success(f"{task.title} finished successfully!")
    return result


__all__ = ["TaskContext", "Task", "install_step", "run_task"]
