"""Run command: pick a task interactively or by name."""

import sys

import click

from provisioner.commands.utils import EXIT_FAILED, execute_task, task_options
from provisioner.errors import format_error
from provisioner.installer import scan_tools
from provisioner.tasks import TASKS
from provisioner.tui import select_task_interactive


@click.command()
@click.argument("task_name", required=False, type=click.Choice(sorted(TASKS)))
@task_options
@click.pass_context
def run(ctx, task_name: str | None, yes: bool, dry_run: bool):
    """Run a provisioning task, choosing it interactively if no name is given."""
    if task_name is None:
        if not sys.stdin.isatty():
            click.echo(format_error("TASK is required when not running in a terminal"), err=True)
            sys.exit(EXIT_FAILED)
        titles = {name: task_cls.title for name, task_cls in TASKS.items()}
        task_name = select_task_interactive(titles, scan_tools())
        if task_name is None:
            click.echo("Cancelled.")
            sys.exit(EXIT_FAILED)

    execute_task(ctx, task_name, yes, dry_run)
