"""Data loader for the bundled task configuration file.

Package lists, Docker repository constants and the OpenCV build settings live
in data/tasks.json. The file is parsed and validated once on first access and
cached for the lifetime of the program.

Cache Invalidation:
- No automatic invalidation - data is read-only after program start
- Tests call clear_cache() so a patched data directory is picked up
"""

from dataclasses import dataclass
from pathlib import Path

from .config import ConfigError, load_config
from .paths import get_data_dir


@dataclass(frozen=True)
class OhMyBash:
    directory: str
    installer_url: str


@dataclass(frozen=True)
class PrepareProfile:
    apt: list[str]
    snap: list[str]
    apt_no_recommends: bool
    snap_classic: bool
    oh_my_bash: OhMyBash


@dataclass(frozen=True)
class DockerProfile:
    conflicting: list[str]
    prerequisites: list[str]
    packages: list[str]
    gpg_url: str
    repo_url: str
    keyring_dir: str
    keyring: str
    source_list: str
    group: str
    test_image: str


@dataclass(frozen=True)
class Archive:
    name: str
    url: str
    zip: str
    directory: str


@dataclass(frozen=True)
class OpenCVProfile:
    required: list[str]
    optional: list[str]
    archives: list[Archive]
    source_dir: str
    contrib_dir: str
    pip: list[str]
    cuda_dependencies: list[str]
    cmake_flags: dict[str, str]
    cuda_env_hints: list[str]


_tasks_cache: dict | None = None


def _load_tasks_file() -> dict:
    global _tasks_cache

    if _tasks_cache is not None:
        return _tasks_cache

    path: Path = get_data_dir() / "tasks.json"
    if not path.is_file():
        raise ConfigError(f"Data file not found: {path}")

    try:
        _tasks_cache = load_config(path)
    except ConfigError as e:
        raise ConfigError(f"Failed to load data file {path}: {e}") from e
    return _tasks_cache


def _section(name: str) -> dict:
    data = _load_tasks_file()
    if name not in data:
        raise ConfigError(f"Invalid tasks data file: missing top-level '{name}' key")
    if not isinstance(data[name], dict):
        raise ConfigError(f"Invalid tasks data file: '{name}' must be an object")
    return data[name]


def _require_str(data: dict, field: str, entity: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{entity} field '{field}' must be a non-empty string")
    return value


def _require_bool(data: dict, field: str, entity: str) -> bool:
    value = data.get(field)
    if not isinstance(value, bool):
        raise ConfigError(f"{entity} field '{field}' must be a boolean")
    return value


def _require_str_list(data: dict, field: str, entity: str) -> list[str]:
    value = data.get(field)
    if not isinstance(value, list):
        raise ConfigError(f"{entity} field '{field}' must be a list")
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item:
            raise ConfigError(f"{entity} field '{field}[{i}]' must be a non-empty string")
    return list(value)


def _require_dict(data: dict, field: str, entity: str) -> dict:
    value = data.get(field)
    if not isinstance(value, dict):
        raise ConfigError(f"{entity} field '{field}' must be an object")
    return value


def get_prepare_profile() -> PrepareProfile:
    data = _section("prepare")
    entity = "Task 'prepare'"
    omb = _require_dict(data, "oh_my_bash", entity)
    return PrepareProfile(
        apt=_require_str_list(data, "apt", entity),
        snap=_require_str_list(data, "snap", entity),
        apt_no_recommends=_require_bool(data, "apt_no_recommends", entity),
        snap_classic=_require_bool(data, "snap_classic", entity),
        oh_my_bash=OhMyBash(
            directory=_require_str(omb, "directory", "oh_my_bash"),
            installer_url=_require_str(omb, "installer_url", "oh_my_bash"),
        ),
    )


def get_docker_profile() -> DockerProfile:
    data = _section("docker")
    entity = "Task 'docker'"
    return DockerProfile(
        conflicting=_require_str_list(data, "conflicting", entity),
        prerequisites=_require_str_list(data, "prerequisites", entity),
        packages=_require_str_list(data, "packages", entity),
        gpg_url=_require_str(data, "gpg_url", entity),
        repo_url=_require_str(data, "repo_url", entity),
        keyring_dir=_require_str(data, "keyring_dir", entity),
        keyring=_require_str(data, "keyring", entity),
        source_list=_require_str(data, "source_list", entity),
        group=_require_str(data, "group", entity),
        test_image=_require_str(data, "test_image", entity),
    )


def get_opencv_profile() -> OpenCVProfile:
    data = _section("opencv")
    entity = "Task 'opencv'"

    archives_data = data.get("archives")
    if not isinstance(archives_data, list) or not archives_data:
        raise ConfigError(f"{entity} field 'archives' must be a non-empty list")
    archives = []
    for i, item in enumerate(archives_data):
        if not isinstance(item, dict):
            raise ConfigError(f"{entity} field 'archives[{i}]' must be an object")
        archive_entity = f"Archive #{i}"
        archives.append(
            Archive(
                name=_require_str(item, "name", archive_entity),
                url=_require_str(item, "url", archive_entity),
                zip=_require_str(item, "zip", archive_entity),
                directory=_require_str(item, "directory", archive_entity),
            )
        )

    flags = _require_dict(data, "cmake_flags", entity)
    for key, value in flags.items():
        if not isinstance(value, str):
            raise ConfigError(f"{entity} cmake flag '{key}' must be a string")

    return OpenCVProfile(
        required=_require_str_list(data, "required", entity),
        optional=_require_str_list(data, "optional", entity),
        archives=archives,
        source_dir=_require_str(data, "source_dir", entity),
        contrib_dir=_require_str(data, "contrib_dir", entity),
        pip=_require_str_list(data, "pip", entity),
        cuda_dependencies=_require_str_list(data, "cuda_dependencies", entity),
        cmake_flags=dict(flags),
        cuda_env_hints=_require_str_list(data, "cuda_env_hints", entity),
    )


def clear_cache() -> None:
    """Drop the parsed data file so the next access reloads it."""
    global _tasks_cache
    _tasks_cache = None


__all__ = [
    "OhMyBash",
    "PrepareProfile",
    "DockerProfile",
    "Archive",
    "OpenCVProfile",
    "get_prepare_profile",
    "get_docker_profile",
    "get_opencv_profile",
    "clear_cache",
]
