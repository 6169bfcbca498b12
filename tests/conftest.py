"""Shared test fixtures."""

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from fuxi.config import Config
from fuxi.ops import Session
from fuxi.system import ProcessRunner, SystemStrategy


class FakeRunner(ProcessRunner):
    """Records every command and answers with canned results.

    Responses are matched on the longest registered argument prefix; anything
    unregistered succeeds with empty output. `git init` creates the `.git`
    directory so that GitRepo accepts the path afterwards.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.responses: dict[tuple[str, ...], tuple[int, str, str]] = {}

    def respond(
        self, *prefix: str, stdout: str = "", returncode: int = 0, stderr: str = ""
    ) -> None:
        self.responses[prefix] = (returncode, stdout, stderr)

    def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(args))
        if args[:2] == ["git", "init"] and cwd is not None:
            (cwd / ".git").mkdir(exist_ok=True)

        returncode, stdout, stderr = 0, "", ""
        best = -1
        for prefix, response in self.responses.items():
            if tuple(args[: len(prefix)]) == prefix and len(prefix) > best:
                best = len(prefix)
                returncode, stdout, stderr = response
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)

    def git_calls(self) -> list[list[str]]:
        return [c[1:] for c in self.calls if c[0] == "git"]


class SudoStrategy(SystemStrategy):
    """A platform whose elevation helper is always available."""

    def elevation_helper(self) -> str | None:
        return "sudo"


class Answers:
    """A scripted confirm capability that remembers the prompts it saw."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def answers() -> Answers:
    return Answers()


@pytest.fixture
def sudo_platform() -> SystemStrategy:
    return SudoStrategy()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "config.toml"


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """An (empty) backup repository working tree."""
    repo = tmp_path / "backup-repo"
    (repo / ".git").mkdir(parents=True)
    return repo


@pytest.fixture
def make_session(
    config_path: Path,
    runner: FakeRunner,
    answers: Answers,
    sudo_platform: SystemStrategy,
) -> Callable[..., Session]:
    """Builds a Session over a fake runner, scripted answers and sudo support."""

    def _make(config: Config | None = None) -> Session:
        return Session(
            config=config or Config(),
            config_path=config_path,
            runner=runner,
            confirm=answers,
            platform=sudo_platform,
        )

    return _make


@pytest.fixture
def live_tree(tmp_path: Path) -> Path:
    """A live directory with nested content to back up."""
    root = tmp_path / "live" / "nvim"
    (root / "lua" / "plugins").mkdir(parents=True)
    (root / "init.lua").write_text("require('plugins')\n")
    (root / "lua" / "options.lua").write_text("vim.o.number = true\n")
    (root / "lua" / "plugins" / "git.lua").write_bytes(b"\x00\x01binary\xff")
    return root
