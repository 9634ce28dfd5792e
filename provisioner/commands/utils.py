"""Shared helpers for the task commands."""

import asyncio
import logging
import sys
from pathlib import Path

import click

from provisioner import setup_logging
from provisioner.config import ConfigError, Settings, load_settings
from provisioner.errors import format_error, format_suggestion
from provisioner.execution import ToolInvoker
from provisioner.installer import PackageInstaller
from provisioner.prompts import Decisions, PromptGate, fatal_pause
from provisioner.reporting import Reporter
from provisioner.tasks import TaskContext, get_task, run_task

_logging = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def task_options(func):
    """Options shared by every task command."""
    func = click.option(
        "--dry-run",
        is_flag=True,
        help="Show the commands that would change the system without running them",
    )(func)
    func = click.option(
        "--yes",
        "-y",
        is_flag=True,
        help="Run unattended, answering questions with their defaults",
    )(func)
    return func


def load_settings_or_exit(ctx: click.Context) -> Settings:
    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(
            format_suggestion(str(e), "run 'provisioner config init' to create a valid config"),
            err=True,
        )
        sys.exit(EXIT_FAILED)


def build_context(
    settings: Settings,
    assume_yes: bool,
    dry_run: bool,
    debug: bool,
    answers: dict[str, bool] | None = None,
) -> TaskContext:
    invoker = ToolInvoker(
        dry_run=dry_run,
        debug=debug,
        default_timeout=settings.timeouts.install,
    )
    decisions = Decisions(
        gate=PromptGate(),
        preset={**settings.answers, **(answers or {})},
        assume_yes=assume_yes,
    )
    reporter = Reporter()
    installer = PackageInstaller(
        invoker,
        decisions,
        reporter,
        install_timeout=settings.timeouts.install,
        probe_timeout=settings.timeouts.probe,
    )
    return TaskContext(
        settings=settings,
        invoker=invoker,
        installer=installer,
        decisions=decisions,
        reporter=reporter,
    )


def execute_task(
    ctx: click.Context,
    task_name: str,
    yes: bool,
    dry_run: bool,
    answers: dict[str, bool] | None = None,
    work_dir: Path | None = None,
    jobs: int | None = None,
) -> None:
    """Run one task end to end and exit with its status."""
    debug = ctx.obj.get("debug", False)
    setup_logging(debug)

    settings = load_settings_or_exit(ctx)
    if work_dir is not None:
        settings.work_dir = work_dir
    if jobs is not None:
        settings.jobs = jobs

    try:
        task = get_task(task_name)
    except (ConfigError, KeyError) as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_FAILED)

    task_ctx = build_context(settings, yes, dry_run, debug, answers)

    try:
        result = asyncio.run(run_task(task, task_ctx))
    except KeyboardInterrupt:
        click.echo("")
        click.echo(format_error("interrupted"), err=True)
        sys.exit(EXIT_INTERRUPTED)

    if debug:
        _logging.debug(f"Commands issued: {task_ctx.invoker.history}")

    if result.completed:
        return

    if result.failed_step != "summary":
        task_ctx.reporter.error(f"Stopped at '{result.failed_step}': {result.reason}")
        fatal_pause(task_ctx.decisions)
    sys.exit(EXIT_FAILED)


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_FAILED",
    "EXIT_INTERRUPTED",
    "task_options",
    "load_settings_or_exit",
    "build_context",
    "execute_task",
]
