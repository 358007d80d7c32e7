"""XDG-compliant path management for pteropurge.

XDG defaults:
- Config: ~/.config/pteropurge/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "pteropurge"


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/pteropurge/ (or XDG_CONFIG_HOME/pteropurge/).
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_settings_path() -> Path:
    """Get the default settings file path.

    Returns:
        Path to ~/.config/pteropurge/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/pteropurge/theme.toml.
    """
    return get_config_dir() / "theme.toml"
