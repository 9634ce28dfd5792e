"""CLI command definitions for provisioner."""

from pathlib import Path

import click

from provisioner import __version__
from provisioner.commands.check import check
from provisioner.commands.config import config
from provisioner.commands.docker import docker_install
from provisioner.commands.list import list_packages
from provisioner.commands.opencv import build_opencv
from provisioner.commands.prepare import prepare
from provisioner.commands.run import run


@click.group()
@click.version_option(__version__, prog_name="provisioner")
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file to use instead of ~/.config/provisioner/config.json",
)
@click.pass_context
def cli(ctx, debug, config_path):
    """Provision an Ubuntu workstation: dev tools, Docker and OpenCV."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


# Register all commands
cli.add_command(prepare)
cli.add_command(docker_install, name="docker-install")
cli.add_command(build_opencv, name="build-opencv")
cli.add_command(run)
cli.add_command(list_packages, name="list")
cli.add_command(check)
cli.add_command(config)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
