"""Package installation and host tool scanning."""

from .dependencies import (
    ToolRequirement,
    ToolStatus,
    extract_version,
    get_all_tools,
    get_tool,
    scan_tools,
)
from .models import InstallerKind, InstallOutcome, InstallStatus, PackageSpec
from .packages import PackageInstaller, parse_dpkg_status, parse_snap_list, summarize

__all__ = [
    "InstallerKind",
    "PackageSpec",
    "InstallStatus",
    "InstallOutcome",
    "PackageInstaller",
    "parse_dpkg_status",
    "parse_snap_list",
    "summarize",
    "ToolRequirement",
    "ToolStatus",
    "extract_version",
    "get_all_tools",
    "get_tool",
    "scan_tools",
]
