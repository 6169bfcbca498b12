"""Global constants and configuration path definitions for fuxi.

This module defines the application identity, the location of the settings
file (resolved through `platformdirs` so it follows each OS's conventions) and
the default values shared by the config, git and ops layers.
"""

from pathlib import Path

from platformdirs import user_config_path

from .errors import ConfigError

# --- Identity ---
APP_NAME = "fuxi"
"""str: The application name, also used as the logger name."""

VERSION = "0.1.0"
"""str: The released version, reported by `fuxi version`."""

# --- Paths ---
CONFIG_FILENAME = "config.toml"
"""str: The name of the settings file inside the config directory."""

# --- Git / Backup Constants ---
DEFAULT_BRANCH = "main"
"""str: The branch backups are committed to when none is configured."""

REMOTE_NAME = "origin"
"""str: The remote backups are pushed to and fetched from."""

GITHUB_SSH_PREFIX = "git@github.com:"
"""str: Prefix used to turn a `user/repo` shorthand into a clone URL."""

BACKUP_ID_PREFIX = "backup_"
BACKUP_ID_FORMAT = "%Y%m%d_%H%M%S"

DEFAULT_PUSH_MESSAGE = "Automated backup commit"
DEFAULT_SAVE_MESSAGE = "Save configuration"

MIN_COMMIT_ID_LENGTH = 7
"""int: Shortest backup ID or abbreviated hash accepted by `apply`."""

ELEVATION_HELPER = "sudo"
"""str: The binary used to retry filesystem operations with elevated rights."""


def get_config_dir() -> Path:
    """Returns the per-user config directory for fuxi (without creating it)."""
    return user_config_path(APP_NAME, appauthor=False)


def get_config_file() -> Path:
    """Resolves the settings file path, creating its directory on demand.

    Returns:
        Path: `<user-config-dir>/fuxi/config.toml`.

    Raises:
        ConfigError: If the config directory cannot be created.
    """
    config_dir = get_config_dir()
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Could not create config directory {config_dir}: {e}") from e
    return config_dir / CONFIG_FILENAME
