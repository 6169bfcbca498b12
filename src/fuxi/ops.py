import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from .config import Config
from .constants import (
    APP_NAME,
    BACKUP_ID_FORMAT,
    BACKUP_ID_PREFIX,
    DEFAULT_SAVE_MESSAGE,
    MIN_COMMIT_ID_LENGTH,
)
from .errors import GitError, UserInputError
from .git_wrapper import GitRepo, resolve_backup
from .sync import PathSynchronizer, mirror_name
from .system import ProcessRunner, SystemStrategy, get_system

console = Console()
logger = logging.getLogger(APP_NAME)


@dataclass
class Session:
    """Everything a command works with: the settings and its side-effect seams.

    Attributes:
        config (Config): Settings loaded at the start of the command.
        config_path (Path): Where `save` writes the settings back.
        runner (ProcessRunner): Executes git and the elevation helper.
        confirm (Callable[[str], bool]): Answers yes/no questions.
        platform (SystemStrategy): Platform-specific capabilities.
    """

    config: Config
    config_path: Path
    runner: ProcessRunner
    confirm: Callable[[str], bool]
    platform: SystemStrategy = field(default_factory=get_system)

    def save(self) -> None:
        """Writes the (mutated) settings back to disk."""
        self.config.save(self.config_path)

    def repo_path(self) -> Path:
        """Returns the configured backup repository path.

        Raises:
            UserInputError: If `fuxi init` has not been run.
        """
        if not self.config.backup_repo_path:
            raise UserInputError(
                "Backup repository path is not set. Please run 'fuxi init' first."
            )
        return Path(self.config.backup_repo_path)

    def repo(self) -> GitRepo:
        """Opens the backup repository."""
        return GitRepo(self.repo_path(), self.runner)

    def synchronizer(self) -> PathSynchronizer:
        return PathSynchronizer(self.runner, self.confirm, self.platform)


def new_backup_id(now: datetime.datetime | None = None) -> str:
    """Builds a `backup_<UTC timestamp>` identifier."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return f"{BACKUP_ID_PREFIX}{now.strftime(BACKUP_ID_FORMAT)}"


def _mirror_targets(session: Session, repo_path: Path) -> list[tuple[Path, Path]]:
    """Pairs each path of the selected profile with its mirror in the repository.

    Every name is derived up front so that an unusable path fails the command
    before anything is copied.

    Returns:
        list[tuple[Path, Path]]: `(live path, repository path)` pairs.
    """
    profile = session.config.require_profile()
    paths = session.config.selected_paths()
    if not paths:
        raise UserInputError(f"No paths configured for the profile '{profile}'.")
    live_paths = [Path(p).expanduser() for p in paths]
    return [(live, repo_path / profile / mirror_name(live)) for live in live_paths]


# --- Repository ---


def init_repo(session: Session, repo: str, path: Path) -> None:
    """Records the remote and local backup repository and initializes it.

    Args:
        session (Session): The current command session.
        repo (str): GitHub repository (`username/repo-name`) or clone URL.
        path (Path): Local working tree for the backup repository.
    """
    if not str(path).strip():
        raise UserInputError("Please provide a valid path for the backup repository.")
    if not repo.strip():
        raise UserInputError(
            "Please provide a valid GitHub repository in the format username/repo-name."
        )

    if not session.confirm(
        "This will initialize a new Git repository at the specified path. Continue?"
    ):
        console.print("Initialization cancelled.")
        return

    config = session.config
    config.backup_repo_path = str(path)
    config.github_repo = repo
    session.save()
    console.print(f"Backups will use the [cyan]{repo}[/cyan] repository at {path}")

    GitRepo.init(path, config.git_branch, remote=repo, runner=session.runner)


def list_backups(session: Session) -> None:
    """Prints the commit history of the backup repository."""
    log = session.repo().log_oneline()
    if not log:
        console.print("No backups found.")
        return
    console.print("[bold]Backups:[/bold]")
    for line in log:
        console.print(f"  {line}", highlight=False)


def save(session: Session, message: str | None = None, force: bool = False) -> None:
    """Commits and pushes the backup repository's current state."""
    if not force and not session.confirm(
        "Are you sure you want to save the current configuration state?"
    ):
        console.print("Save cancelled.")
        return

    repo = session.repo()
    repo.push(session.config.git_branch, message or DEFAULT_SAVE_MESSAGE)
    console.print("[bold green]✔ Configuration saved successfully![/bold green]")


# --- Backup / Apply ---


def backup(session: Session, message: str | None = None, push: bool = False) -> str:
    """Mirrors every path of the selected profile into the backup repository.

    Args:
        session (Session): The current command session.
        message (str | None, optional): Commit message used with `push`.
        push (bool, optional): Commit and push right away. Defaults to False.

    Returns:
        str: The new backup ID.
    """
    config = session.config
    repo_path = session.repo_path()
    if not config.github_repo:
        raise UserInputError("GitHub repository is not set. Please run 'fuxi init' first.")
    targets = _mirror_targets(session, repo_path)

    backup_id = new_backup_id()
    synchronizer = session.synchronizer()

    for src, dst in targets:
        if not src.exists():
            console.print(f"[yellow]Warning: Source path does not exist: {src}[/yellow]")
            logger.warning(f"Skipping missing path {src}")
            continue

        synchronizer.sync(src, dst, flatten_into_existing_dir=False)
        console.print(f"Backed up {src} to {dst}", highlight=False)

    config.last_backup_id = backup_id
    session.save()
    console.print(f"[bold green]✔ Backup '{backup_id}' created successfully![/bold green]")

    if not push:
        console.print("Save the backup using the 'fuxi save' command.")
        return backup_id

    try:
        session.repo().push(config.git_branch, message or f"Backup {backup_id}")
        console.print("[bold green]✔ Backup pushed to GitHub successfully![/bold green]")
    except GitError as e:
        # The local snapshot is intact; `fuxi save` can push it later.
        logger.error(f"Push failed after backup {backup_id}: {e}")
        console.print(f"[bold red]Error during push:[/bold red] {e}")
    return backup_id


def apply(session: Session, backup_id: str, dry_run: bool = False) -> None:
    """Restores the selected profile's paths from a backup.

    Args:
        session (Session): The current command session.
        backup_id (str): `latest`, a backup ID, or a commit hash.
        dry_run (bool, optional):   Only report what would be fetched and copied.
                                    Defaults to False.
    """
    config = session.config
    latest = backup_id == "latest"
    if latest:
        if not config.last_backup_id:
            raise UserInputError("No last backup ID found.")
        console.print(f"Using last backup ID: {config.last_backup_id}")
    elif len(backup_id) < MIN_COMMIT_ID_LENGTH:
        raise UserInputError("Please provide a valid backup ID or commit hash.")

    repo = session.repo()
    targets = _mirror_targets(session, repo.path)
    branch = config.git_branch

    log = repo.log_full()
    if not log:
        raise UserInputError("No backups found in the repository.")

    commit = None
    if not latest:
        commit = resolve_backup(log, backup_id)
        if commit is None:
            raise UserInputError(f"Backup ID or commit hash '{backup_id}' not found.")

    if dry_run:
        target = commit or f"origin/{branch}"
        console.print(f"[Dry Run] Would fetch and check out {target}", highlight=False)
    elif latest:
        repo.fetch(branch)
        console.print("Fetched the latest backup from git repository.")
        try:
            repo.pull(branch)
        except GitError as e:
            logger.warning(f"Pull failed after fetch: {e}")
            console.print(f"[bold red]Error during pull:[/bold red] {e}")
    else:
        repo.fetch(branch, commit)
        console.print("Fetched the specified backup from git repository.")

    synchronizer = session.synchronizer()
    for dst, src in targets:
        if not src.exists():
            console.print(
                f"[yellow]Warning: Backup path does not exist in repository: {src}[/yellow]"
            )
            continue

        if dry_run:
            console.print(f"[Dry Run] Would apply {src} to {dst}", highlight=False)
            continue

        synchronizer.sync(src, dst, flatten_into_existing_dir=True)
        console.print(f"Applied {src} to {dst}", highlight=False)

    if dry_run:
        return

    if not latest:
        config.last_backup_id = backup_id
        session.save()
    console.print(f"[bold green]✔ Backup '{backup_id}' applied successfully![/bold green]")


# --- Profiles ---


def list_profiles(session: Session) -> None:
    """Prints every profile and its paths, marking the selected one."""
    config = session.config
    if not config.profiles:
        console.print("No profiles found.")
        return
    for name, paths in config.profiles.items():
        marker = " [green](selected)[/green]" if name == config.selected_profile else ""
        console.print(f"Profile: [cyan]{name}[/cyan]{marker}")
        for path in paths:
            console.print(f"  - {path}", highlight=False)


def create_profile(session: Session, name: str) -> None:
    """Creates a profile; an existing one is reported and left alone."""
    config = session.config
    if not config.create_profile(name):
        console.print(f"Profile '{name}' already exists.")
        return
    session.save()
    console.print(f"Profile '{name}' created.")
    if config.selected_profile == name:
        console.print(f"Profile '{name}' is now the selected profile.")


def switch_profile(session: Session, name: str) -> None:
    session.config.select_profile(name)
    session.save()
    console.print(f"Switched to profile '{name}'.")


def delete_profile(session: Session, name: str) -> None:
    session.config.delete_profile(name)
    session.save()
    console.print(f"Profile '{name}' deleted.")


# --- Paths ---


def list_paths(session: Session) -> None:
    paths = session.config.selected_paths()
    if not paths:
        console.print("No paths configured.")
        return
    console.print("Configured paths:")
    for i, path in enumerate(paths, start=1):
        console.print(f"  {i}: {path}", highlight=False)


def add_paths(session: Session, paths: list[str]) -> None:
    """Adds paths to the selected profile, skipping ones already present.

    The settings file is only rewritten if something was added.
    """
    config = session.config
    config.require_profile()
    changed = False
    for path in paths:
        if config.add_path(path):
            changed = True
            console.print(f"Added: {path}", highlight=False)
        else:
            console.print(f"Path already exists: {path}", highlight=False)

    if changed:
        session.save()
        console.print("Configuration updated successfully!")


def remove_paths(session: Session, paths: list[str]) -> None:
    """Removes paths from the selected profile, reporting ones not found.

    The settings file is only rewritten if something was removed.
    """
    config = session.config
    config.require_profile()
    changed = False
    for path in paths:
        if config.remove_path(path):
            changed = True
            console.print(f"Removed: {path}", highlight=False)
        else:
            console.print(f"Path not found: {path}", highlight=False)

    if changed:
        session.save()
        console.print("Configuration updated successfully!")
