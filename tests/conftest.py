"""Shared fixtures: real git repositories and a store in tmp_path."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from devtrack.database import Project, Store


class GitRepo:
    """A throwaway git repository driven through the git CLI."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str, date: str | None = None) -> str:
        env = dict(os.environ)
        env["GIT_CONFIG_NOSYSTEM"] = "1"
        if date is not None:
            env["GIT_AUTHOR_DATE"] = date
            env["GIT_COMMITTER_DATE"] = date
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            env=env,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout

    def write(self, name: str, content: str) -> None:
        target = self.path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    def commit(self, message: str, date: str | None = None) -> None:
        self.git("add", "-A")
        self.git("commit", "-q", "-m", message, date=date)

    def tag(self, name: str, message: str | None = None, date: str | None = None) -> None:
        if message is None:
            self.git("tag", name, date=date)
        else:
            self.git("tag", "-a", name, "-m", message, date=date)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    path = tmp_path / "repo"
    path.mkdir()
    repo = GitRepo(path)
    repo.git("init", "-q")
    repo.git("checkout", "-q", "-b", "main")
    repo.git("config", "user.email", "dev@example.com")
    repo.git("config", "user.name", "Dev")
    repo.git("config", "commit.gpgsign", "false")
    repo.git("config", "tag.gpgsign", "false")
    return repo


@pytest.fixture
def store(tmp_path: Path):
    s = Store.open(tmp_path / "data")
    yield s
    s.close()


@pytest.fixture
def project(store: Store, tmp_path: Path) -> Project:
    p = Project.new("demo", str(tmp_path / "demo"))
    store.create_project(p)
    return p


@pytest.fixture
def worked_repo(git_repo: GitRepo) -> GitRepo:
    """An old commit plus one commit today: app.py +30/-3 and a new util.py +12."""
    git_repo.write("app.py", "\n".join(f"line{i}" for i in range(10)) + "\n")
    git_repo.commit("initial", date="2020-01-01T12:00:00")

    lines = [f"line{i}" for i in range(3, 10)] + [f"new{i}" for i in range(30)]
    git_repo.write("app.py", "\n".join(lines) + "\n")
    git_repo.write("util.py", "\n".join(f"helper{i}" for i in range(12)) + "\n")
    git_repo.commit("add feature")
    return git_repo
