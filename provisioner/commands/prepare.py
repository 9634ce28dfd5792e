"""Prepare command implementation."""

import click

from provisioner.commands.utils import execute_task, task_options


@click.command()
@task_options
@click.pass_context
def prepare(ctx, yes: bool, dry_run: bool):
    """Update the system and install essential development tools."""
    execute_task(ctx, "prepare", yes, dry_run)
