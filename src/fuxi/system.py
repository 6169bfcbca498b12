import logging
import os
import shutil
import subprocess
from pathlib import Path

from rich.prompt import Confirm

from .constants import APP_NAME, ELEVATION_HELPER

logger = logging.getLogger(APP_NAME)


def confirm(prompt: str) -> bool:
    """Asks the user a yes/no question on the terminal, defaulting to No.

    A closed stdin (cron, pipes) counts as No.
    """
    try:
        return Confirm.ask(prompt, default=False)
    except EOFError:
        logger.debug(f"No answer to '{prompt}' (stdin closed); assuming no")
        return False


class ProcessRunner:
    """Runs external programs (git, the elevation helper) as child processes.

    Commands receive the caller's environment and PATH. Tests swap this for a
    fake that records invocations and returns canned results.
    """

    def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> subprocess.CompletedProcess[str]:
        """Executes a command and waits for it to exit.

        Args:
            args (list[str]): The program and its arguments.
            cwd (Path | None, optional): Working directory. Defaults to None.
            capture (bool, optional):   Whether to capture stdout/stderr. Pass
                                        False for commands that may prompt on
                                        the terminal (e.g. sudo). Defaults to True.

        Returns:
            subprocess.CompletedProcess[str]: The finished process. A non-zero
            return code is not raised; callers decide what failure means.

        Raises:
            FileNotFoundError: If the program is not on PATH.
        """
        logger.debug(f"Running: {' '.join(args)} (cwd={cwd})")
        return subprocess.run(
            args, cwd=cwd, capture_output=capture, text=True, check=False
        )


class SystemStrategy:
    """Base class defining the platform-specific pieces fuxi relies on."""

    def elevation_helper(self) -> str | None:
        """Returns the privilege-escalation binary, or None if unavailable."""
        return None

    def elevate(self, args: list[str]) -> list[str] | None:
        """Wraps a command so it runs with elevated privileges.

        Args:
            args (list[str]): The command to elevate.

        Returns:
            list[str] | None: The elevated command line, or None when the
            platform offers no elevation fallback.
        """
        helper = self.elevation_helper()
        if helper is None:
            return None
        return [helper, *args]


class UnixStrategy(SystemStrategy):
    """System strategy for Linux and macOS: retries go through sudo."""

    def elevation_helper(self) -> str | None:
        """Returns sudo if it is installed."""
        if shutil.which(ELEVATION_HELPER) is None:
            logger.debug(f"{ELEVATION_HELPER} not found on PATH")
            return None
        return ELEVATION_HELPER


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: UnixStrategy on POSIX platforms, otherwise the base
        SystemStrategy, which offers no elevation fallback.
    """
    if os.name == "posix":
        return UnixStrategy()
    return SystemStrategy()
