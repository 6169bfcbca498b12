import contextlib
import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import tomli_w

from .constants import APP_NAME, DEFAULT_BRANCH
from .errors import ConfigError, UserInputError

logger = logging.getLogger(APP_NAME)


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_profile_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(name, str)
        and isinstance(paths, list)
        and all(isinstance(p, str) for p in paths)
        for name, paths in value.items()
    )


_VALIDATORS = {
    "platform": _is_str,
    "selected_profile": _is_str,
    "profiles": _is_profile_map,
    "last_backup_id": _is_str,
    "backup_repo_path": _is_str,
    "github_repo": _is_str,
    "git_branch": _is_str,
}


@dataclass
class Config:
    """The persisted fuxi settings.

    A single instance is loaded at the start of every command, threaded through
    the operations that need it and written back by the mutating ones.

    Attributes:
        platform (str): The platform the settings were written on.
        selected_profile (str | None): The profile commands operate on.
            Tolerated to name a missing profile; its path list then reads empty.
        profiles (dict[str, list[str]]): Profile name to ordered path strings.
        last_backup_id (str | None): The most recent backup created or applied.
        backup_repo_path (str | None): The local git working tree used as store.
        github_repo (str | None): The remote repository (`user/name` or URL).
        git_branch (str): The branch backups are committed to.
    """

    platform: str = field(default_factory=lambda: sys.platform)
    selected_profile: str | None = None
    profiles: dict[str, list[str]] = field(default_factory=dict)
    last_backup_id: str | None = None
    backup_repo_path: str | None = None
    github_repo: str | None = None
    git_branch: str = DEFAULT_BRANCH

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Loads the settings file, falling back to defaults where necessary.

        This never fails the caller: a missing file yields the defaults, a
        syntax error is logged and yields the defaults, and individual keys that
        are unknown or of the wrong type are logged and skipped.

        Args:
            path (Path): The TOML settings file.

        Returns:
            Config: The populated configuration object.
        """
        instance = cls()
        if not path.exists():
            return instance

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}. Using defaults.")
            return instance
        except Exception as e:
            # Unreadable files and non-UTF-8 content land here.
            logger.warning(f"Failed to load config from {path}: {e}. Using defaults.")
            return instance

        instance._update(data)
        return instance

    def _update(self, data: dict[str, Any]) -> None:
        """Applies valid keys from parsed TOML, warning on everything else."""
        unknown = set(data) - set(_VALIDATORS)
        if unknown:
            logger.warning(
                f"Unknown config keys: {', '.join(sorted(unknown))}. Ignoring."
            )

        for key, is_valid in _VALIDATORS.items():
            if key not in data:
                continue
            value = data[key]
            if not is_valid(value):
                logger.warning(
                    f"Config error in '{key}': unexpected value {value!r}. "
                    "Falling back to default."
                )
                continue
            if key == "profiles":
                # Duplicates may have been introduced by hand edits.
                value = {name: list(dict.fromkeys(p)) for name, p in value.items()}
            setattr(self, key, value)

    def to_dict(self) -> dict[str, Any]:
        """Returns the settings as a TOML-serializable mapping (None omitted)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def save(self, path: Path) -> None:
        """Persists the settings with a whole-file atomic rewrite.

        Args:
            path (Path): The TOML settings file.

        Raises:
            ConfigError: If the file cannot be written.
        """
        tmp_file = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, "wb") as f:
                tomli_w.dump(self.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_file, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_file.unlink(missing_ok=True)
            raise ConfigError(f"Failed to write config to {path}: {e}") from e
        logger.debug(f"Config saved to {path}")

    # --- Profiles ---

    def selected_paths(self) -> list[str]:
        """Returns the selected profile's paths, or [] if none is usable."""
        if not self.selected_profile:
            return []
        return list(self.profiles.get(self.selected_profile, []))

    def require_profile(self) -> str:
        """Returns the selected profile name.

        Raises:
            UserInputError: If no profile is selected.
        """
        if not self.selected_profile:
            raise UserInputError(
                "No profile selected. Create or switch to a profile first."
            )
        return self.selected_profile

    def create_profile(self, name: str) -> bool:
        """Adds an empty profile. Returns False if it already exists.

        The first profile ever created becomes the selected one.
        """
        if name in self.profiles:
            return False
        self.profiles[name] = []
        if len(self.profiles) == 1:
            self.selected_profile = name
        return True

    def select_profile(self, name: str) -> None:
        """Makes `name` the selected profile.

        Raises:
            UserInputError: If the profile does not exist.
        """
        if name not in self.profiles:
            raise UserInputError(f"Profile '{name}' does not exist.")
        self.selected_profile = name

    def delete_profile(self, name: str) -> None:
        """Removes a profile, clearing the selection if it pointed at it.

        Raises:
            UserInputError: If the profile does not exist.
        """
        if name not in self.profiles:
            raise UserInputError(f"Profile '{name}' does not exist.")
        del self.profiles[name]
        if self.selected_profile == name:
            self.selected_profile = None

    # --- Paths ---

    def add_path(self, path: str) -> bool:
        """Appends a path to the selected profile. Returns False on duplicates."""
        paths = self.profiles.setdefault(self.require_profile(), [])
        if path in paths:
            return False
        paths.append(path)
        return True

    def remove_path(self, path: str) -> bool:
        """Drops a path from the selected profile. Returns False if absent."""
        paths = self.profiles.get(self.require_profile(), [])
        if path not in paths:
            return False
        paths.remove(path)
        return True
