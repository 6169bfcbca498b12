import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from . import ops, system
from .config import Config
from .constants import APP_NAME, VERSION, get_config_file
from .errors import FuxiError
from .system import ProcessRunner

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


class FuxiHelpFormatter(argparse.HelpFormatter):
    """Custom help formatter that groups subcommands under headers.

    This formatter intercepts the subparser action, strips the default
    metavar block, and renders the commands in logical categories.
    """

    def _format_action(self, action: argparse.Action) -> str:
        if isinstance(action, argparse._SubParsersAction):
            parts = []

            groups = {
                "Backups": ["backup", "apply", "save", "list"],
                "Setup": ["init", "profile", "path"],
                "General": ["config", "version"],
            }

            subactions = list(self._iter_indented_subactions(action))

            for group_name, commands in groups.items():
                group_actions = [a for a in subactions if a.dest in commands]
                if not group_actions:
                    continue

                parts.append(f"\n  {group_name}:\n")

                self._indent()
                for subaction in group_actions:
                    parts.append(self._format_action(subaction))
                self._dedent()

            return self._join_parts(parts)

        return super()._format_action(action)


def setup_logging(verbose: bool) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, log DEBUG and up; otherwise WARNING and up.
    """
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if logger.handlers:
        return

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)


def build_parser() -> argparse.ArgumentParser:
    """Builds the argument parser for every fuxi verb."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Back up profiles of files and folders to a Git repository.",
        formatter_class=FuxiHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("version", help="Show version information")

    config_parser = subparsers.add_parser("config", help="Show configuration path")
    config_parser.add_argument(
        "-r", "--raw", action="store_true", help="Output just the file path"
    )

    init_parser = subparsers.add_parser("init", help="Initialize Git backup repository")
    init_parser.add_argument("repo", help="GitHub repository (username/repo-name)")
    init_parser.add_argument("path", type=Path, help="Local backup repository path")

    # Profile Commands
    profile_parser = subparsers.add_parser("profile", help="Manage profiles")
    profile_sub = profile_parser.add_subparsers(dest="action", required=True)
    profile_sub.add_parser("list", help="List all profiles")
    for name, help_text in [
        ("create", "Create a new profile"),
        ("switch", "Switch to a profile"),
        ("delete", "Delete a profile"),
    ]:
        aliases = ["select"] if name == "switch" else []
        p = profile_sub.add_parser(name, aliases=aliases, help=help_text)
        p.add_argument("name", help="Profile name")

    # Path Commands
    path_parser = subparsers.add_parser("path", help="Manage paths")
    path_sub = path_parser.add_subparsers(dest="action", required=True)
    path_sub.add_parser("list", help="List all paths")
    path_sub.add_parser("add", help="Add path(s)").add_argument(
        "paths", nargs="+", help="Paths to add"
    )
    path_sub.add_parser("remove", help="Remove path(s)").add_argument(
        "paths", nargs="+", help="Paths to remove"
    )

    # Backup Commands
    backup_parser = subparsers.add_parser("backup", help="Create a backup")
    backup_parser.add_argument("-m", "--message", help="Backup commit message")
    backup_parser.add_argument(
        "--push", action="store_true", help="Push to GitHub after backup"
    )

    apply_parser = subparsers.add_parser("apply", help="Apply a backup ID")
    apply_parser.add_argument("id", help="Backup ID, commit hash, or 'latest'")
    apply_parser.add_argument(
        "-d",
        "--dryrun",
        action="store_true",
        help="Show what would be done without making changes",
    )

    save_parser = subparsers.add_parser("save", help="Commit and push the backup repo")
    save_parser.add_argument("-m", "--message", help="Commit message")
    save_parser.add_argument(
        "--force", action="store_true", help="Force save without confirmation"
    )

    subparsers.add_parser("list", help="List all backups")

    return parser


def dispatch(args: argparse.Namespace, session: ops.Session) -> None:
    """Routes parsed arguments to the matching operation."""
    if args.command == "config":
        if args.raw:
            print(session.config_path)
        else:
            console.print(f"Configuration file: {session.config_path}", highlight=False)
    elif args.command == "init":
        ops.init_repo(session, args.repo, args.path)
    elif args.command == "profile":
        if args.action == "list":
            ops.list_profiles(session)
        elif args.action == "create":
            ops.create_profile(session, args.name)
        elif args.action in ("switch", "select"):
            ops.switch_profile(session, args.name)
        elif args.action == "delete":
            ops.delete_profile(session, args.name)
    elif args.command == "path":
        if args.action == "list":
            ops.list_paths(session)
        elif args.action == "add":
            ops.add_paths(session, args.paths)
        elif args.action == "remove":
            ops.remove_paths(session, args.paths)
    elif args.command == "backup":
        ops.backup(session, message=args.message, push=args.push)
    elif args.command == "apply":
        ops.apply(session, args.id, dry_run=args.dryrun)
    elif args.command == "save":
        ops.save(session, message=args.message, force=args.force)
    elif args.command == "list":
        ops.list_backups(session)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fuxi CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "version":
        console.print(f"{APP_NAME} version {VERSION}")
        return

    try:
        config_path = get_config_file()
        session = ops.Session(
            config=Config.load(config_path),
            config_path=config_path,
            runner=ProcessRunner(),
            confirm=system.confirm,
        )
        dispatch(args, session)
    except FuxiError as e:
        logger.debug(f"Command '{args.command}' failed", exc_info=True)
        err_console.print(f"[bold red]Error:[/bold red] {e}", highlight=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
