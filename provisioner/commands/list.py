"""List command implementation."""

import sys

import click

from provisioner.commands.utils import EXIT_FAILED, build_context, load_settings_or_exit
from provisioner.config import ConfigError
from provisioner.errors import format_error
from provisioner.tasks import TASKS, get_task


@click.command(name="list")
@click.argument("task_name", required=False, type=click.Choice(sorted(TASKS)))
@click.pass_context
def list_packages(ctx, task_name: str | None):
    """List the packages each task manages."""
    settings = load_settings_or_exit(ctx)
    task_ctx = build_context(settings, assume_yes=True, dry_run=True, debug=False)

    names = [task_name] if task_name else list(TASKS)
    for name in names:
        try:
            task = get_task(name)
        except (ConfigError, KeyError) as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(EXIT_FAILED)

        click.secho(f"{name}: {task.title}", bold=True)
        for group, specs in task.packages(task_ctx).items():
            click.echo(f"  {group}:")
            for spec in specs:
                suffix = " (optional)" if spec.optional else ""
                click.echo(f"    - {spec.label}{suffix}")
        click.echo("")
