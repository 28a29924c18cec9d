"""Test configuration and fixtures."""

import shutil
from collections.abc import Generator
from pathlib import Path

import pytest
from git import Repo

from gitaccount.gitconfig import GitConfigBridge
from gitaccount.profile import ProfileStore, User

GLOBAL_CONFIG = """\
[user]
\tname = Global User
\temail = global@example.com
[alias]
\tco = checkout
"""


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory and point HOME at it."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_CONFIG_GLOBAL", raising=False)
    monkeypatch.delenv("GIT_ACCOUNT_FILE", raising=False)
    return home


@pytest.fixture
def global_config(temp_home: Path) -> Path:
    """Write a global .gitconfig into the temporary home."""
    path = temp_home / ".gitconfig"
    path.write_text(GLOBAL_CONFIG)
    return path


@pytest.fixture
def requires_git() -> None:
    """Skip tests that shell out to git when it is not installed."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture
def git_repo(tmp_path: Path, temp_home: Path, requires_git: None) -> Generator[Path, None, None]:
    """Create a temporary git repository with an origin remote."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    repo = Repo.init(repo_path)
    repo.create_remote("origin", "git@github.com:alice/project.git")
    repo.close()

    yield repo_path


@pytest.fixture
def bridge(git_repo: Path, temp_home: Path, global_config: Path) -> GitConfigBridge:
    """Bridge bound to the temporary repository and home."""
    return GitConfigBridge(repo_dir=git_repo, home=temp_home)


@pytest.fixture
def store(tmp_path: Path) -> ProfileStore:
    """Profile store in a temporary file."""
    return ProfileStore(tmp_path / ".git-account")


@pytest.fixture
def alice() -> User:
    return User(
        id="a",
        name="Alice",
        email="alice@x.com",
        private_key="/k/a",
        gpg_key="GPGA",
    )


@pytest.fixture
def bob() -> User:
    return User(id="b", name="Bob", email="bob@y.org", private_key="/k/b")
