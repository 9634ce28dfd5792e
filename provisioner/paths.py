"""Configuration path helpers for provisioner."""

import os
from pathlib import Path


def get_config_dir() -> Path:
    """Return XDG-compliant config directory: ~/.config/provisioner"""
    return Path.home() / ".config" / "provisioner"


def get_data_dir() -> Path:
    """Return path to the bundled data directory (read-only)"""
    return Path(__file__).parent / "data"


def get_config_path() -> Path:
    """Return path to user config file.

    Priority:
    1. PROVISIONER_CONFIG environment variable (if set)
    2. ~/.config/provisioner/config.json (default XDG location)
    """
    if "PROVISIONER_CONFIG" in os.environ:
        return Path(os.environ["PROVISIONER_CONFIG"])
    return get_config_dir() / "config.json"
