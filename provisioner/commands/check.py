"""Check command: report the host tools the tasks rely on."""

import click

from provisioner.installer import get_all_tools, scan_tools
from provisioner.tasks import TASKS


@click.command()
@click.option(
    "--task",
    "-t",
    type=click.Choice(sorted(TASKS)),
    help="Only show tools used by this task",
)
@click.pass_context
def check(ctx, task: str | None):
    """Show which external tools are available on this host."""
    statuses = scan_tools(task)
    tools = get_all_tools()
    width = max((len(name) for name in statuses), default=10)

    missing = 0
    for name, status in statuses.items():
        tool = tools[name]
        version = status.version or ""
        line = f"{status.status_icon} {name:<{width}}  {version}"
        if not status.available:
            missing += 1
            line += f"  ({tool.install_hint})"
        elif not status.version_satisfied:
            line += f"  (needs >= {tool.min_version})"
        click.echo(line.rstrip())

    click.echo("")
    if missing:
        click.echo(f"{missing} tool(s) missing.")
    else:
        click.echo("All tools available.")
