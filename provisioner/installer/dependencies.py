"""Host tool scanning."""

import re
import shutil
import subprocess
from dataclasses import dataclass

SUBPROCESS_TIMEOUT = 5


@dataclass
class ToolRequirement:
    name: str
    binary: str
    install_hint: str
    version_command: str | None = None
    min_version: str | None = None
    used_by: tuple[str, ...] = ()

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def get_version(self) -> str | None:
        if not self.version_command:
            return None

        try:
            result = subprocess.run(
                self.version_command.split(),
                capture_output=True,
                timeout=SUBPROCESS_TIMEOUT,
                text=True,
            )
            if result.returncode == 0:
                output = result.stdout.strip() or result.stderr.strip()
                return extract_version(output)
        except (subprocess.TimeoutExpired, OSError):
            pass

        return None

    def is_version_satisfied(self, version: str | None) -> bool:
        if not self.min_version:
            return True
        if not version:
            return False

        from packaging import version as pkg_version

        try:
            return pkg_version.parse(version) >= pkg_version.parse(self.min_version)
        except pkg_version.InvalidVersion:
            return True


@dataclass
class ToolStatus:
    name: str
    available: bool
    version: str | None = None
    path: str | None = None
    version_satisfied: bool = True

    @property
    def status_icon(self) -> str:
        if not self.available:
            return "❌"
        if not self.version_satisfied:
            return "⚠️"
        return "✅"


def extract_version(output: str) -> str | None:
    for pattern in (r"(\d+\.\d+\.\d+)", r"(\d+\.\d+)"):
        match = re.search(pattern, output)
        if match:
            return match.group(1)
    return None


_BUILTIN_TOOLS = [
    ToolRequirement(
        name="apt-get",
        binary="apt-get",
        version_command="apt-get --version",
        install_hint="Requires a Debian/Ubuntu system",
        used_by=("prepare", "docker-install", "build-opencv"),
    ),
    ToolRequirement(
        name="dpkg",
        binary="dpkg",
        version_command="dpkg --version",
        install_hint="Requires a Debian/Ubuntu system",
        used_by=("prepare", "docker-install", "build-opencv"),
    ),
    ToolRequirement(
        name="snap",
        binary="snap",
        version_command="snap --version",
        install_hint="sudo apt-get install snapd",
        used_by=("prepare",),
    ),
    ToolRequirement(
        name="curl",
        binary="curl",
        version_command="curl --version",
        install_hint="sudo apt-get install curl",
        used_by=("prepare", "docker-install"),
    ),
    ToolRequirement(
        name="wget",
        binary="wget",
        version_command="wget --version",
        install_hint="sudo apt-get install wget",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="unzip",
        binary="unzip",
        version_command="unzip -v",
        install_hint="sudo apt-get install unzip",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="cmake",
        binary="cmake",
        version_command="cmake --version",
        min_version="3.5",
        install_hint="sudo apt-get install cmake",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="make",
        binary="make",
        version_command="make --version",
        install_hint="sudo apt-get install make",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="pkg-config",
        binary="pkg-config",
        version_command="pkg-config --version",
        install_hint="sudo apt-get install pkg-config",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="python3",
        binary="python3",
        version_command="python3 --version",
        install_hint="sudo apt-get install python3",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="docker",
        binary="docker",
        version_command="docker --version",
        install_hint="Run 'provisioner docker-install'",
        used_by=("docker-install",),
    ),
    ToolRequirement(
        name="nvidia-smi",
        binary="nvidia-smi",
        install_hint="Install the NVIDIA driver",
        used_by=("build-opencv",),
    ),
    ToolRequirement(
        name="nvcc",
        binary="nvcc",
        version_command="nvcc --version",
        install_hint="Install the CUDA toolkit",
        used_by=("build-opencv",),
    ),
]


def get_all_tools() -> dict[str, ToolRequirement]:
    return {tool.name: tool for tool in _BUILTIN_TOOLS}


def get_tool(name: str) -> ToolRequirement | None:
    return get_all_tools().get(name)


def scan_tools(task: str | None = None) -> dict[str, ToolStatus]:
    """Report availability and version of host tools, optionally for one task."""
    result = {}

    for name, tool in get_all_tools().items():
        if task and task not in tool.used_by:
            continue

        path = shutil.which(tool.binary)
        available = path is not None
        version = None
        version_satisfied = True

        if available:
            version = tool.get_version()
            version_satisfied = tool.is_version_satisfied(version)

        result[name] = ToolStatus(
            name=name,
            available=available,
            version=version,
            path=path,
            version_satisfied=version_satisfied,
        )

    return result


__all__ = [
    "ToolRequirement",
    "ToolStatus",
    "extract_version",
    "get_all_tools",
    "get_tool",
    "scan_tools",
]
