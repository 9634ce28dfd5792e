"""Show the effective settings."""

import json

import click

from provisioner.commands.utils import load_settings_or_exit


@click.command(name="show")
@click.pass_context
def config_show(ctx):
    """Print the settings in effect after defaults and the config file."""
    settings = load_settings_or_exit(ctx)
    click.echo(json.dumps(settings.to_dict(), indent=2))
