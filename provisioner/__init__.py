"""Idempotent Ubuntu provisioning: dev packages, Docker and OpenCV builds."""

import logging

from .config import ConfigError, Settings, load_config, load_settings
from .errors import (
    ProvisionError,
    ResourceMissing,
    ToolFailure,
    UserDeclined,
    format_error,
    format_suggestion,
)
from .execution import (
    BUILD_TIMEOUT,
    DOWNLOAD_TIMEOUT,
    INSTALL_TIMEOUT,
    PROBE_TIMEOUT,
    ToolInvoker,
    ToolResult,
    run_command_async,
)
from .paths import get_config_dir, get_config_path, get_data_dir

__version__ = "0.1.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Configure root logging; --debug turns on DEBUG output to stderr."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


__all__ = [
    "__version__",
    "setup_logging",
    "ConfigError",
    "Settings",
    "load_config",
    "load_settings",
    "ProvisionError",
    "ResourceMissing",
    "ToolFailure",
    "UserDeclined",
    "format_error",
    "format_suggestion",
    "PROBE_TIMEOUT",
    "INSTALL_TIMEOUT",
    "DOWNLOAD_TIMEOUT",
    "BUILD_TIMEOUT",
    "ToolInvoker",
    "ToolResult",
    "run_command_async",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
]
