"""Settings loading and JSON preprocessing utilities."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from .paths import get_config_path

_logging = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config loading or parsing fails.

    Syntax errors carry the offending line and a caret under the column.
    """


def _skip_trivia(text: str, i: int) -> int:
    """Return the index of the next char that is not whitespace or a // comment."""
    n = len(text)
    while i < n:
        if text[i] in " \t\r\n":
            i += 1
        elif text.startswith("//", i):
            while i < n and text[i] != "\n":
                i += 1
        else:
            break
    return i


def preprocess_jsonish(text: str) -> str:
    """Turn JSON-ish text into strict JSON.

    Tolerates // line comments and trailing commas before ] or }. Stripped
    characters are replaced with spaces so line/column positions in later
    error messages still point at the original text.
    """
    out = []
    in_string = False
    escaped = False
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            while i < n and text[i] != "\n":
                out.append(" ")
                i += 1
        elif char == ",":
            j = _skip_trivia(text, i + 1)
            out.append(" " if j < n and text[j] in "]}" else ",")
            i += 1
        else:
            out.append(char)
            i += 1

    return "".join(out)


def _format_syntax_error(original_text: str, error: json.JSONDecodeError) -> str:
    lines = original_text.split("\n")
    parts = [f"Config syntax error at line {error.lineno}, col {error.colno}: {error.msg}"]
    if 1 <= error.lineno <= len(lines):
        parts.append(lines[error.lineno - 1])
        parts.append(" " * (error.colno - 1) + "^")
    return "\n".join(parts)


def _read_text(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {file_path}")
    except PermissionError:
        raise ConfigError(f"Permission denied reading config file: {file_path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Config file is not valid UTF-8: {file_path}")
    except OSError as e:
        raise ConfigError(f"Error reading config file {file_path}: {e}")


def load_config(path_or_text: Path | str) -> dict:
    """Load and parse a JSON-ish config file or string.

    Args:
        path_or_text: Either a Path to a JSON file, or the JSON text itself

    Returns:
        The parsed top-level object

    Raises:
        ConfigError: If the file cannot be read or contains syntax errors
        TypeError: If path_or_text is neither Path nor str
    """
    if isinstance(path_or_text, Path):
        original_text = _read_text(path_or_text)
    elif isinstance(path_or_text, str):
        original_text = path_or_text
    else:
        raise TypeError(
            f"path_or_text must be Path or str, got {type(path_or_text).__name__}"
        )

    try:
        result = json.loads(preprocess_jsonish(original_text))
    except json.JSONDecodeError as e:
        raise ConfigError(_format_syntax_error(original_text, e)) from e

    if not isinstance(result, dict):
        raise ConfigError(f"Config must be a JSON object, got {type(result).__name__}")

    return result


def load_yaml_config(path: Path) -> dict:
    """Load a YAML settings file."""
    try:
        data = yaml.safe_load(_read_text(path))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config syntax error in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")
    return data


@dataclass
class Timeouts:
    """Per-category command timeouts in seconds. None disables the limit."""
    probe: int | None = 30
    install: int | None = 600
    download: int | None = 1800
    build: int | None = None


@dataclass
class Settings:
    """Effective settings for one provisioning run."""
    work_dir: Path = field(default_factory=Path.cwd)
    install_prefix: Path = Path("/usr/local")
    jobs: int = field(default_factory=lambda: os.cpu_count() or 1)
    timeouts: Timeouts = field(default_factory=Timeouts)
    extra_packages: dict[str, list[str]] = field(default_factory=dict)
    answers: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["work_dir"] = str(self.work_dir)
        data["install_prefix"] = str(self.install_prefix)
        return data


YAML_SUFFIXES = (".yaml", ".yml")

_KNOWN_KEYS = {"work_dir", "install_prefix", "jobs", "timeouts", "extra_packages", "answers"}


def _check_timeout(name: str, value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"timeouts.{name} must be a positive integer or null")
    return value


def validate_settings(data: dict) -> Settings:
    """Convert a raw settings mapping into Settings.

    Raises:
        ConfigError: On unknown keys or wrongly typed values
    """
    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    settings = Settings()

    if "work_dir" in data:
        if not isinstance(data["work_dir"], str) or not data["work_dir"]:
            raise ConfigError("work_dir must be a non-empty string")
        settings.work_dir = Path(data["work_dir"]).expanduser().resolve()

    if "install_prefix" in data:
        if not isinstance(data["install_prefix"], str) or not data["install_prefix"]:
            raise ConfigError("install_prefix must be a non-empty string")
        settings.install_prefix = Path(data["install_prefix"])

    if "jobs" in data:
        jobs = data["jobs"]
        if isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1:
            raise ConfigError("jobs must be a positive integer")
        settings.jobs = jobs

    timeouts = data.get("timeouts", {})
    if not isinstance(timeouts, dict):
        raise ConfigError("timeouts must be an object")
    for name, value in timeouts.items():
        if name not in {"probe", "install", "download", "build"}:
            raise ConfigError(f"Unknown timeout '{name}'")
        setattr(settings.timeouts, name, _check_timeout(name, value))

    extra = data.get("extra_packages", {})
    if not isinstance(extra, dict):
        raise ConfigError("extra_packages must be an object")
    for task, names in extra.items():
        if not isinstance(names, list) or not all(
            isinstance(n, str) and n for n in names
        ):
            raise ConfigError(f"extra_packages.{task} must be a list of package names")
        settings.extra_packages[task] = list(names)

    answers = data.get("answers", {})
    if not isinstance(answers, dict):
        raise ConfigError("answers must be an object")
    for key, value in answers.items():
        if not isinstance(value, bool):
            raise ConfigError(f"answers.{key} must be true or false")
        settings.answers[key] = value

    return settings


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from the user config file.

    A missing file at the default location yields default settings; a missing
    file that was named explicitly is an error.
    """
    explicit = path is not None or "PROVISIONER_CONFIG" in os.environ
    config_path = path if path is not None else get_config_path()

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        _logging.debug(f"No config at {config_path}, using defaults")
        return Settings()

    _logging.debug(f"Loading settings from {config_path}")
    if config_path.suffix in YAML_SUFFIXES:
        data = load_yaml_config(config_path)
    else:
        data = load_config(config_path)
    return validate_settings(data)


DEFAULT_CONFIG_TEXT = """{
    // Directory where OpenCV sources are downloaded and built.
    // "work_dir": "~/src",
    "install_prefix": "/usr/local",
    "timeouts": {
        "probe": 30,
        "install": 600,
        "download": 1800,
        "build": null,
    },
    // Additional packages per task, e.g. {"prepare": ["ripgrep"]}
    "extra_packages": {},
    // Pre-answered questions, e.g. {"cuda": false, "reboot": false}
    "answers": {},
}
"""

DEFAULT_YAML_CONFIG_TEXT = """# Directory where OpenCV sources are downloaded and built.
# work_dir: ~/src
install_prefix: /usr/local
timeouts:
  probe: 30
  install: 600
  download: 1800
  build: null
# Additional packages per task, e.g. {prepare: [ripgrep]}
extra_packages: {}
# Pre-answered questions, e.g. {cuda: false, reboot: false}
answers: {}
"""


def default_config_text(path: Path) -> str:
    """The config init template matching the file format load_settings expects."""
    if path.suffix in YAML_SUFFIXES:
        return DEFAULT_YAML_CONFIG_TEXT
    return DEFAULT_CONFIG_TEXT


__all__ = [
    "ConfigError",
    "Timeouts",
    "Settings",
    "preprocess_jsonish",
    "load_config",
    "load_yaml_config",
    "validate_settings",
    "load_settings",
    "DEFAULT_CONFIG_TEXT",
    "DEFAULT_YAML_CONFIG_TEXT",
    "default_config_text",
]
