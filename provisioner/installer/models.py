"""Data models for package installation."""

from dataclasses import dataclass
from enum import Enum


class InstallerKind(Enum):
    APT = "apt"
    SNAP = "snap"
    PIP = "pip"


@dataclass(frozen=True)
class PackageSpec:
    name: str
    installer: InstallerKind = InstallerKind.APT
    optional: bool = False
    classic: bool = False
    no_recommends: bool = False

    @property
    def label(self) -> str:
        if self.installer == InstallerKind.APT:
            return self.name
        return f"{self.name} ({self.installer.value})"


class InstallStatus(Enum):
    ALREADY_PRESENT = "already_present"
    INSTALLED = "installed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class InstallOutcome:
    status: InstallStatus
    reason: str | None = None

    @classmethod
    def already_present(cls) -> "InstallOutcome":
        return cls(InstallStatus.ALREADY_PRESENT)

    @classmethod
    def installed(cls) -> "InstallOutcome":
        return cls(InstallStatus.INSTALLED)

    @classmethod
    def failed(cls, reason: str) -> "InstallOutcome":
        return cls(InstallStatus.FAILED, reason)

    @classmethod
    def skipped(cls, reason: str = "user declined") -> "InstallOutcome":
        return cls(InstallStatus.SKIPPED, reason)

    @property
    def ok(self) -> bool:
        return self.status != InstallStatus.FAILED


__all__ = [
    "InstallerKind",
    "PackageSpec",
    "InstallStatus",
    "InstallOutcome",
]
