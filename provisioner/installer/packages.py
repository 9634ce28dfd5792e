"""Presence checks and installation for APT, Snap and pip packages."""

import logging

from ..errors import ToolFailure, tail
from ..execution import INSTALL_TIMEOUT, PROBE_TIMEOUT, ToolInvoker
from ..prompts import Decisions, optional_package
from ..reporting import Reporter
from .models import InstallerKind, InstallOutcome, InstallStatus, PackageSpec

_logging = logging.getLogger(__name__)


def parse_dpkg_status(output: str, name: str) -> bool:
    """Return True if `dpkg -l` output lists name as installed ("ii")."""
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 2 or fields[0] != "ii":
            continue
        package = fields[1].split(":", 1)[0]
        if package == name:
            return True
    return False


def parse_snap_list(output: str, name: str) -> bool:
    """Return True if `snap list` output has name in its first column."""
    for line in output.splitlines()[1:]:
        fields = line.split()
        if fields and fields[0] == name:
            return True
    return False


class PackageInstaller:
    """Ensures packages are installed, skipping those already present."""

    def __init__(
        self,
        invoker: ToolInvoker,
        decisions: Decisions,
        reporter: Reporter,
        install_timeout: int | None = INSTALL_TIMEOUT,
        probe_timeout: int | None = PROBE_TIMEOUT,
    ):
        self.invoker = invoker
        self.decisions = decisions
        self.reporter = reporter
        self.install_timeout = install_timeout
        self.probe_timeout = probe_timeout

    async def is_present(self, spec: PackageSpec) -> bool:
        if spec.installer == InstallerKind.APT:
            result = await self.invoker.query(["dpkg", "-l", spec.name], timeout=self.probe_timeout)
            return result.ok and parse_dpkg_status(result.output, spec.name)
        if spec.installer == InstallerKind.SNAP:
            result = await self.invoker.query(["snap", "list", spec.name], timeout=self.probe_timeout)
            return result.ok and parse_snap_list(result.output, spec.name)
        result = await self.invoker.query(
            ["python3", "-m", "pip", "show", spec.name], timeout=self.probe_timeout
        )
        return result.ok

    def install_command(self, spec: PackageSpec) -> tuple[list[str], bool]:
        """Return the install argv and whether it needs root."""
        if spec.installer == InstallerKind.APT:
            argv = ["apt-get", "install", "-y"]
            if spec.no_recommends:
                argv.append("--no-install-recommends")
            return [*argv, spec.name], True
        if spec.installer == InstallerKind.SNAP:
            argv = ["snap", "install"]
            if spec.classic:
                argv.append("--classic")
            return [*argv, spec.name], True
        return ["pip3", "install", spec.name], False

    async def ensure_installed(self, spec: PackageSpec) -> InstallOutcome:
        if await self.is_present(spec):
            self.reporter.success(f"{spec.label} is already installed. Skipping...")
            return InstallOutcome.already_present()

        if spec.optional and not self.decisions.resolve(optional_package(spec.name)):
            self.reporter.warn(f"Skipping {spec.label}.")
            return InstallOutcome.skipped()

        self.reporter.info(f"Installing: {spec.label}...")
        argv, privileged = self.install_command(spec)
        try:
            await self.invoker.invoke(argv, timeout=self.install_timeout, privileged=privileged)
        except ToolFailure as e:
            self.reporter.error(f"Failed to install {spec.label}.")
            if e.output:
                self.reporter.detail(tail(e.output))
            return InstallOutcome.failed(f"exit status {e.exit_code}")

        self.reporter.success(f"{spec.label} installed successfully.")
        return InstallOutcome.installed()

    async def ensure_all(
        self, specs: list[PackageSpec]
    ) -> list[tuple[PackageSpec, InstallOutcome]]:
        results = []
        seen = set()
        for spec in specs:
            key = (spec.installer, spec.name)
            if key in seen:
                _logging.debug(f"{spec.label} listed twice, checked once")
                continue
            seen.add(key)
            results.append((spec, await self.ensure_installed(spec)))
        return results


def summarize(results: list[tuple[PackageSpec, InstallOutcome]]) -> dict[InstallStatus, list[str]]:
    """Group package names by outcome status."""
    summary: dict[InstallStatus, list[str]] = {status: [] for status in InstallStatus}
    for spec, outcome in results:
        summary[outcome.status].append(spec.name)
    return summary


__all__ = [
    "PackageInstaller",
    "parse_dpkg_status",
    "parse_snap_list",
    "summarize",
]
