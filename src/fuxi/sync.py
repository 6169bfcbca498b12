"""Path synchronization engine: mirrors live paths into and out of the backup repo.

Backups copy each configured path to `<repo>/<profile>/<mirror_name(path)>`.
Restores copy that entry back, merging a directory's contents into the live
directory rather than nesting a new level. Filesystem failures can be retried
once through the platform's elevation helper after the user confirms.
"""

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path, PurePath

from .constants import APP_NAME
from .errors import CopyError, UserInputError
from .system import ProcessRunner, SystemStrategy

logger = logging.getLogger(APP_NAME)


def mirror_name(path: str | os.PathLike[str]) -> Path:
    """Returns the name a path is mirrored under inside a profile directory.

    Walks the components from the end and keeps the first normal one, skipping
    the root/drive anchor and `.`/`..` entries. `/etc/hosts` maps to `hosts`,
    `~/.config/nvim/` to `nvim`, `src/..` to `src`.

    Raises:
        UserInputError: If the path has no normal component (e.g. `/`).
    """
    pure = PurePath(path)
    for part in reversed(pure.parts):
        if part in (pure.anchor, os.curdir, os.pardir):
            continue
        return Path(part)
    raise UserInputError(f"Cannot derive a backup name from path '{path}'.")


def copy_tree(src: Path, dst: Path) -> None:
    """Recursively copies a directory, merging into `dst` if it exists.

    Stops at the first failing entry.
    """
    dst.mkdir(parents=True, exist_ok=True)
    for item in sorted(src.iterdir()):
        item_dst = dst / item.name
        if item.is_dir():
            copy_tree(item, item_dst)
        else:
            shutil.copy(item, item_dst)


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


class PathSynchronizer:
    """Copies files and directory trees, with a confirmed privileged retry.

    Attributes:
        runner (ProcessRunner): Runs the elevated helper commands.
        confirm (Callable[[str], bool]): Asks the user whether to retry.
        platform (SystemStrategy): Supplies the elevation helper, if any.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        confirm: Callable[[str], bool],
        platform: SystemStrategy,
    ):
        self.runner = runner
        self.confirm = confirm
        self.platform = platform

    def sync(
        self, source: Path, destination: Path, flatten_into_existing_dir: bool = False
    ) -> None:
        """Copies `source` to `destination`.

        Args:
            source (Path): An existing file or directory.
            destination (Path): Where the copy lands. Existing files are
                                overwritten.
            flatten_into_existing_dir (bool, optional): For a directory source,
                copy each direct child into `destination` instead of recreating
                `source` as a whole. Used when restoring onto live paths.
                Defaults to False.

        Raises:
            CopyError: On the first entry that could not be copied, after the
                       elevation retry was declined, unavailable or failed.
        """
        if not source.exists():
            raise CopyError(f"Source path does not exist: {source}")

        if not source.is_dir():
            self._make_dirs(destination.parent)
            self._copy_entry(source, destination)
            return

        if _is_within(destination, source):
            raise CopyError(f"Cannot copy directory {source} into itself ({destination})")

        if flatten_into_existing_dir:
            self._make_dirs(destination)
            for entry in sorted(source.iterdir()):
                self._copy_entry(entry, destination / entry.name)
        else:
            self._copy_entry(source, destination)

    def _make_dirs(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._retry_elevated(
                f"Failed to create directory {path}: {e}. Retry creating it",
                [["mkdir", "-p", str(path)]],
                e,
            )

    def _copy_entry(self, src: Path, dst: Path) -> None:
        is_dir = src.is_dir()
        try:
            if is_dir:
                copy_tree(src, dst)
            else:
                shutil.copy(src, dst)
        except OSError as e:
            kind = "directory" if is_dir else "file"
            if is_dir:
                # Trailing "/." merges into dst instead of nesting src under it.
                commands = [
                    ["mkdir", "-p", str(dst)],
                    ["cp", "-a", f"{src}{os.sep}.", str(dst)],
                ]
            else:
                commands = [
                    ["mkdir", "-p", str(dst.parent)],
                    ["cp", "-a", str(src), str(dst)],
                ]
            self._retry_elevated(
                f"Failed to copy {kind} {src} -> {dst}: {e}. Retry", commands, e
            )
        logger.debug(f"Copied {src} -> {dst}")

    def _retry_elevated(
        self, prompt: str, commands: list[list[str]], error: OSError
    ) -> None:
        """Offers one privileged retry of a failed operation.

        Raises:
            CopyError: If elevation is unavailable, declined, or fails.
        """
        helper = self.platform.elevation_helper()
        if helper is None:
            raise CopyError(str(error)) from error

        if not self.confirm(f"{prompt} with {helper}?"):
            raise CopyError(str(error)) from error

        for args in commands:
            cmd = self.platform.elevate(args)
            if cmd is None:
                raise CopyError(str(error)) from error
            logger.info(f"Retrying with elevated privileges: {' '.join(cmd)}")
            try:
                res = self.runner.run(cmd, capture=False)
            except OSError as e:
                raise CopyError(f"Could not run {helper}: {e}") from e
            if res.returncode != 0:
                raise CopyError(
                    f"{helper} {' '.join(args)} failed with exit code {res.returncode}"
                )
