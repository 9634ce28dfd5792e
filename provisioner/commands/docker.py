"""Docker install command implementation."""

import click

from provisioner.commands.utils import execute_task, task_options


@click.command(name="docker-install")
@task_options
@click.option(
    "--reboot/--no-reboot",
    default=None,
    help="Reboot at the end to apply the docker group change",
)
@click.pass_context
def docker_install(ctx, yes: bool, dry_run: bool, reboot: bool | None):
    """Install Docker Engine from the official repository."""
    answers = {}
    if reboot is not None:
        answers["reboot"] = reboot
    execute_task(ctx, "docker-install", yes, dry_run, answers=answers)
