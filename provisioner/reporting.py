"""Leveled console output for provisioning runs."""

import logging

import click

_logging = logging.getLogger(__name__)


class Reporter:
    """Human-directed progress messages.

    Each level maps to a colour and glyph. When debug logging is on, every
    message is also sent to the logging module at the matching level.
    """

    STYLES = {
        "step": ("==>", "blue"),
        "info": ("[→]", "cyan"),
        "success": ("[✔]", "green"),
        "warn": ("[!]", "yellow"),
        "error": ("[✘]", "red"),
    }

    def __init__(self, color: bool | None = None):
        self.color = color

    def _log(self, level: int, message: str) -> None:
        if _logging.isEnabledFor(logging.DEBUG):
            _logging.log(level, message)

    def _emit(self, level: str, message: str, err: bool = False) -> None:
        glyph, colour = self.STYLES[level]
        click.secho(f"{glyph} {message}", fg=colour, bold=level == "step", err=err, color=self.color)

    def step(self, index: int, total: int, name: str) -> None:
        self._log(logging.INFO, f"step {index}/{total}: {name}")
        self._emit("step", f"[{index}/{total}] {name}")

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._log(logging.INFO, message)
        self._emit("success", message)

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)
        self._emit("warn", message)

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)
        self._emit("error", message, err=True)

    def detail(self, message: str) -> None:
        """Indented, uncoloured follow-up text (hints, command output)."""
        self._log(logging.DEBUG, message)
        for line in message.splitlines():
            click.echo(f"    {line}")

    def banner(self, title: str, lines: list[str]) -> None:
        click.echo("")
        click.echo("=" * 60)
        click.secho(title, fg="blue", bold=True, color=self.color)
        click.echo("=" * 60)
        for line in lines:
            click.echo(f"  {line}")
        click.echo("=" * 60)


__all__ = ["Reporter"]
