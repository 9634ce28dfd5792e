"""Async command execution utilities.

This is the only module that starts external processes. Read-only probes go
through ToolInvoker.query; anything that changes the system goes through
ToolInvoker.invoke, which honours dry-run mode and raises ToolFailure on a
non-zero exit status.
"""

import asyncio
import logging
import os
from collections import deque
from dataclasses import dataclass, field

import click

from .errors import ToolFailure

PROBE_TIMEOUT = 30
INSTALL_TIMEOUT = 600
DOWNLOAD_TIMEOUT = 1800
BUILD_TIMEOUT = None

STREAM_TAIL_LINES = 200

_DEFAULT_TIMEOUT = object()

_logging = logging.getLogger(__name__)


@dataclass
class ToolResult:
    argv: list[str]
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def _read_streamed(stream: asyncio.StreamReader) -> str:
    lines: deque[str] = deque(maxlen=STREAM_TAIL_LINES)
    while True:
        raw = await stream.readline()
        if not raw:
            break
        line = raw.decode(errors="replace").rstrip("\n")
        click.echo(line)
        lines.append(line)
    return "\n".join(lines)


async def run_command_async(
    argv: list[str],
    timeout: float | None = PROBE_TIMEOUT,
    cwd: str | os.PathLike | None = None,
    input: str | None = None,
    stream: bool = False,
    debug: bool = False,
) -> ToolResult:
    """Run a command and return its exit code and combined output.

    stderr is folded into stdout. With stream=True, output is echoed line by
    line as it arrives and only the last STREAM_TAIL_LINES lines are kept.
    On cancellation the child is terminated before the cancellation
    propagates.
    """
    process = None
    try:
        if debug:
            _logging.debug(f"Running command: {' '.join(argv)}")
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd,
        )
        try:
            if stream:
                if input is not None:
                    process.stdin.write(input.encode())
                    await process.stdin.drain()
                    process.stdin.close()
                output = await asyncio.wait_for(
                    _read_streamed(process.stdout), timeout=timeout
                )
                await process.wait()
            else:
                stdout, _ = await asyncio.wait_for(
                    process.communicate(input.encode() if input is not None else None),
                    timeout=timeout,
                )
                output = stdout.decode(errors="replace").strip()
            returncode = process.returncode if process.returncode is not None else 1
            return ToolResult(list(argv), returncode, output)
        except asyncio.TimeoutError:
            process.kill()
            _ = await process.wait()
            _logging.error(f"Command timed out after {timeout} seconds: {' '.join(argv)}")
            return ToolResult(list(argv), 1, f"Command timed out after {timeout} seconds")
        except asyncio.CancelledError:
            if process.returncode is None:
                _logging.warning(f"Interrupted, terminating: {' '.join(argv)}")
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=10)
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()
            raise
    except FileNotFoundError:
        _logging.debug(f"Command not found: {argv[0]}")
        return ToolResult(list(argv), 127, f"{argv[0]}: command not found")
    except OSError as e:
        _logging.error(f"Command execution failed: {type(e).__name__}: {e} | Command: {' '.join(argv)}")
        return ToolResult(list(argv), 1, f"Error: {e}")
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()


def is_root() -> bool:
    return os.geteuid() == 0


@dataclass
class ToolInvoker:
    """Runs external tools on behalf of the provisioning steps."""
    dry_run: bool = False
    debug: bool = False
    default_timeout: float | None = INSTALL_TIMEOUT
    history: list[list[str]] = field(default_factory=list)

    def _with_privilege(self, argv: list[str], privileged: bool) -> list[str]:
        if privileged and not is_root():
            return ["sudo", *argv]
        return list(argv)

    async def query(
        self,
        argv: list[str],
        timeout: float | None = PROBE_TIMEOUT,
        cwd: str | os.PathLike | None = None,
    ) -> ToolResult:
        """Run a read-only probe. Never raises on a non-zero exit."""
        return await run_command_async(argv, timeout=timeout, cwd=cwd, debug=self.debug)

    async def invoke(
        self,
        argv: list[str],
        timeout: float | None | object = _DEFAULT_TIMEOUT,
        cwd: str | os.PathLike | None = None,
        input: str | None = None,
        privileged: bool = False,
        stream: bool = False,
    ) -> ToolResult:
        """Run a system-mutating command.

        Raises:
            ToolFailure: If the command exits with a non-zero status
        """
        command = self._with_privilege(argv, privileged)
        self.history.append(command)

        if self.dry_run:
            click.echo(f"[DRY-RUN] Would execute: {' '.join(command)}")
            return ToolResult(command, 0, "")

        if timeout is _DEFAULT_TIMEOUT:
            timeout = self.default_timeout

        result = await run_command_async(
            command,
            timeout=timeout,
            cwd=cwd,
            input=input,
            stream=stream,
            debug=self.debug,
        )
        if not result.ok:
            if self.debug:
                _logging.debug(f"  Return code: {result.exit_code}")
            raise ToolFailure(command, result.exit_code, result.output)
        return result


__all__ = [
    "PROBE_TIMEOUT",
    "INSTALL_TIMEOUT",
    "DOWNLOAD_TIMEOUT",
    "BUILD_TIMEOUT",
    "ToolResult",
    "ToolInvoker",
    "run_command_async",
    "is_root",
]
