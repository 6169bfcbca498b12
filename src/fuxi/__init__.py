"""fuxi: profile-based backups of files and folders into a Git repository.

This package provides the command-line interface, the path synchronization
engine that mirrors live paths into the backup repository and back, and thin
wrappers around the settings file and the git binary.
"""

from . import (
    cli,
    config,
    constants,
    errors,
    git_wrapper,
    ops,
    sync,
    system,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "errors",
    "git_wrapper",
    "ops",
    "sync",
    "system",
]
