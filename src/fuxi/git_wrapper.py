import logging
import re
from pathlib import Path

from rich.console import Console

from .constants import (
    APP_NAME,
    DEFAULT_PUSH_MESSAGE,
    GITHUB_SSH_PREFIX,
    REMOTE_NAME,
)
from .errors import GitError
from .system import ProcessRunner

console = Console()
logger = logging.getLogger(APP_NAME)

# `owner/name`, optionally with a `.git` suffix.
GITHUB_SHORTHAND = re.compile(r"^[A-Za-z0-9_-][\w.-]*/[\w.-]+$")


def remote_url(repo: str) -> str:
    """Expands a `owner/name` shorthand into a GitHub SSH clone URL.

    Anything else (URLs, scp-style addresses, local paths) is returned
    unchanged.
    """
    if not GITHUB_SHORTHAND.match(repo):
        return repo
    return f"{GITHUB_SSH_PREFIX}{repo.removesuffix('.git')}.git"


def resolve_backup(log_lines: list[str], backup_id: str) -> str | None:
    """Finds the commit a backup ID or (abbreviated) hash refers to.

    Args:
        log_lines (list[str]): Lines of `GitRepo.log_full` ("<full hash> <subject>").
        backup_id (str): A commit hash or hash prefix, or a backup ID that
                         appears in a commit subject
                         (e.g. "Backup backup_20250101_120000").

    Returns:
        str | None: The full hash of the newest matching commit, or None.
    """
    for line in log_lines:
        commit, _, subject = line.partition(" ")
        if commit.startswith(backup_id) or backup_id in subject.split():
            return commit
    return None


class GitRepo:
    """A wrapper around the Git command-line interface for the backup repository.

    Every command runs through an injectable `ProcessRunner` inside the
    repository's working tree. Failures surface as `GitError` carrying git's
    stderr; nothing is retried here.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path, runner: ProcessRunner | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.
            runner (ProcessRunner | None, optional): Executes git. Defaults to
                                                     a real subprocess runner.

        Raises:
            GitError: If the specified path does not contain a .git directory.
        """
        self.path = path
        self.runner = runner or ProcessRunner()
        if not (self.path / ".git").exists():
            raise GitError(f"Not a git repository: {self.path}")

    @classmethod
    def init(
        cls,
        path: Path,
        branch: str,
        remote: str | None = None,
        runner: ProcessRunner | None = None,
    ) -> "GitRepo":
        """Creates (if needed) and initializes a repository at `path`.

        Args:
            path (Path): Directory for the new working tree.
            branch (str): Name of the initial branch.
            remote (str | None, optional):  Repository registered as `origin`
                                            (`user/repo` or URL). Defaults to None.
            runner (ProcessRunner | None, optional): Executes git.

        Returns:
            GitRepo: The initialized repository.

        Raises:
            GitError: If the directory cannot be created or git fails.
        """
        runner = runner or ProcessRunner()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise GitError(f"Could not create repository directory {path}: {e}") from e

        if not (path / ".git").exists():
            _run_git(runner, path, ["init", "-b", branch])
            logger.info(f"Initialized git repository at {path}")

        repo = cls(path, runner)
        if remote and not repo.has_remote(REMOTE_NAME):
            repo.run(["remote", "add", REMOTE_NAME, remote_url(remote)])
        return repo

    def run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            str: The stdout of the command.

        Raises:
            GitError: If the git command returns a non-zero exit code.
        """
        return _run_git(self.runner, self.path, args)

    def has_remote(self, name: str) -> bool:
        """Checks whether a remote with the given name is configured."""
        return name in self.run(["remote"]).split()

    def status_porcelain(self) -> list[str]:
        """Returns the lines of `git status --porcelain` (empty when clean)."""
        output = self.run(["status", "--porcelain"])
        return output.splitlines() if output.strip() else []

    def log_oneline(self) -> list[str]:
        """Returns the history as `<short hash> <subject>` lines, newest first.

        A repository without any commit yields an empty list.
        """
        return self._log("--oneline")

    def log_full(self) -> list[str]:
        """Like `log_oneline`, but with full hashes, which `fetch` can use."""
        return self._log("--format=%H %s")

    def _log(self, fmt: str) -> list[str]:
        try:
            output = self.run(["log", fmt])
        except GitError as e:
            # `git log` exits 128 on a branch with no commits yet.
            if "does not have any commits" in str(e):
                return []
            raise
        return [line for line in output.splitlines() if line.strip()]

    def push(self, branch: str, message: str | None = None) -> None:
        """Stages everything, commits and pushes to `origin/<branch>`.

        Does nothing (besides saying so) when the working tree is clean.

        Args:
            branch (str): The branch to push.
            message (str | None, optional): Commit message. Defaults to
                                            "Automated backup commit".
        """
        console.print("Pushing to GitHub...")
        self.run(["add", "."])

        if not self.status_porcelain():
            console.print("No changes to commit.")
            return

        self.run(["commit", "-m", message or DEFAULT_PUSH_MESSAGE])
        self.run(["push", REMOTE_NAME, branch])
        console.print("[green]Successfully pushed to GitHub![/green]")

    def fetch(self, branch: str, commit: str | None = None) -> None:
        """Fetches from `origin` and checks out a backup.

        Args:
            branch (str): The backup branch.
            commit (str | None, optional):  A full commit hash to check out
                                            (remotes reject abbreviated ones). When
                                            None, the branch is checked out and
                                            hard-reset to `origin/<branch>`.
        """
        console.print("Fetching from GitHub...")
        if commit:
            self.run(["fetch", REMOTE_NAME, commit])
            self.run(["checkout", commit])
        else:
            self.run(["fetch", REMOTE_NAME, branch])
            self.run(["checkout", branch])
            self.run(["reset", "--hard", f"{REMOTE_NAME}/{branch}"])
        console.print("[green]Successfully fetched from GitHub![/green]")

    def pull(self, branch: str) -> None:
        """Pulls `origin/<branch>` into the current checkout."""
        console.print("Pulling from GitHub...")
        self.run(["pull", REMOTE_NAME, branch])
        console.print("[green]Successfully pulled from GitHub![/green]")


def _run_git(runner: ProcessRunner, cwd: Path, args: list[str]) -> str:
    """Runs `git <args>` in `cwd`, converting failures into GitError."""
    try:
        res = runner.run(["git", *args], cwd=cwd)
    except OSError as e:
        raise GitError(f"Could not run git: {e}") from e

    if res.returncode != 0:
        detail = (res.stderr or res.stdout or "").strip()
        raise GitError(
            f"Git command 'git {' '.join(args)}' failed with exit code "
            f"{res.returncode}: {detail}"
        )
    return res.stdout or ""
