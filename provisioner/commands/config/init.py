"""Initialize config command implementation."""

import sys
from pathlib import Path

import click

from provisioner.config import default_config_text
from provisioner.errors import format_error
from provisioner.paths import get_config_path


@click.command(name="init")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Force re-initialization, overwriting existing config",
)
@click.pass_context
def config_init(ctx, force: bool):
    """Write a commented config file with the default settings.

    Creates ~/.config/provisioner/config.json (or the path given with
    --config). Use --force to overwrite an existing config (creates backup
    first).
    """
    config_path = Path(ctx.obj.get("config_path") or get_config_path())

    if config_path.exists() and not force:
        click.echo(f"Config file already exists: {config_path}")
        click.echo("Use --force to re-initialize (creates backup first).")
        sys.exit(1)

    if config_path.exists():
        backup_path = config_path.with_suffix(config_path.suffix + ".bak")
        click.echo(f"Backing up existing config to {backup_path}...")
        config_path.rename(backup_path)
        click.echo("✅ Backup created")

    click.echo(f"Initializing config at {config_path}...")
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(default_config_text(config_path))
    except OSError as e:
        click.echo(format_error(f"initialization failed: {e}"), err=True)
        sys.exit(1)

    click.echo("✅ Config initialized successfully")
