"""Tests for the git scanner against real repositories."""

import subprocess
from datetime import date
from pathlib import Path

import pytest

from devtrack.database.models import FileChange
from devtrack.errors import InvalidDateSpec, InvalidRepository, ScanFailed
from devtrack.scanner import GitRunner, GitScanner


def _forbid_subprocess(monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("git must not be spawned")

    monkeypatch.setattr(subprocess, "run", fail)


class TestDiff:
    def test_today_diff_reports_todays_changes(self, worked_repo):
        diff = GitScanner().today_diff(worked_repo.path)

        assert sorted(diff.files, key=lambda f: f.path) == [
            FileChange(path="app.py", additions=30, deletions=3),
            FileChange(path="util.py", additions=12, deletions=0),
        ]
        assert diff.total_additions == 42
        assert diff.total_deletions == 3
        assert diff.date == date.today().isoformat()

    def test_window_before_today_is_empty(self, worked_repo):
        diff = GitScanner().diff_since(worked_repo.path, "1 day ago", "midnight")

        assert diff.files == []
        assert diff.total_additions == 0
        assert diff.total_deletions == 0
        assert diff.is_empty

    def test_diff_since_labels_result_with_since(self, worked_repo):
        diff = GitScanner().diff_since(worked_repo.path, "2019-12-31")

        assert diff.date == "2019-12-31"
        assert sum(f.additions for f in diff.files) == 52

    def test_uncommitted_changes(self, worked_repo):
        (worked_repo.path / "app.py").write_text((worked_repo.path / "app.py").read_text() + "extra\n")

        changes = GitScanner().uncommitted_changes(worked_repo.path)

        assert changes == [FileChange(path="app.py", additions=1, deletions=0)]

    def test_repository_without_commits_fails(self, git_repo):
        with pytest.raises(ScanFailed):
            GitScanner().diff_since(git_repo.path, "midnight")


class TestRepositoryInfo:
    def test_current_branch(self, worked_repo):
        assert GitScanner().current_branch(worked_repo.path) == "main"

    def test_last_commit_message(self, worked_repo):
        assert GitScanner().last_commit_message(worked_repo.path) == "add feature"

    def test_recent_commit_subjects(self, worked_repo):
        scanner = GitScanner()

        assert scanner.recent_commit_subjects(worked_repo.path) == ["add feature", "initial"]
        assert scanner.recent_commit_subjects(worked_repo.path, count=1) == ["add feature"]
        assert scanner.recent_commit_subjects(worked_repo.path, count=0) == []

    def test_is_repository(self, worked_repo, tmp_path: Path):
        scanner = GitScanner()

        assert scanner.is_repository(worked_repo.path)
        assert not scanner.is_repository(tmp_path)


class TestListTags:
    def test_tags_newest_first(self, worked_repo):
        worked_repo.tag("v1.0.0", "First release", date="2021-01-01T00:00:00")
        worked_repo.tag("v1.1.0", "Second release", date="2022-01-01T00:00:00")

        tags = GitScanner().list_tags(worked_repo.path)

        assert [t.name for t in tags] == ["v1.1.0", "v1.0.0"]
        assert tags[1].message == "First release"
        assert tags[0].commit_hash
        assert tags[0].date.startswith("2022-01-01")

    def test_no_tags(self, worked_repo):
        assert GitScanner().list_tags(worked_repo.path) == []


class TestRejectedInput:
    def test_not_a_repository(self, tmp_path: Path):
        with pytest.raises(InvalidRepository, match="Not a git repository"):
            GitScanner().today_diff(tmp_path)

    def test_injection_path_never_reaches_git(self, monkeypatch):
        _forbid_subprocess(monkeypatch)

        with pytest.raises(InvalidRepository):
            GitScanner().today_diff("; rm -rf /")

    def test_existing_path_with_metacharacters_never_reaches_git(self, tmp_path: Path, monkeypatch):
        repo = tmp_path / "repo; rm -rf x"
        (repo / ".git").mkdir(parents=True)
        _forbid_subprocess(monkeypatch)

        with pytest.raises(InvalidRepository, match="invalid character"):
            GitScanner().list_tags(repo)

    def test_injection_date_never_reaches_git(self, tmp_path: Path, monkeypatch):
        (tmp_path / ".git").mkdir()
        _forbid_subprocess(monkeypatch)

        with pytest.raises(InvalidDateSpec):
            GitScanner().diff_since(tmp_path, "today; rm -rf /")


class TestGitRunner:
    def test_missing_executable(self, tmp_path: Path):
        runner = GitRunner(executable="devtrack-no-such-git")

        with pytest.raises(ScanFailed, match="Failed to run git"):
            runner.run(tmp_path, ["status"])

    def test_timeout(self, tmp_path: Path, monkeypatch):
        def slow(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(subprocess, "run", slow)

        with pytest.raises(ScanFailed, match="timed out"):
            GitRunner(timeout=0.5).run(tmp_path, ["log"])

    def test_nonzero_exit_includes_stderr(self, tmp_path: Path, monkeypatch):
        def failing(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="fatal: bad revision")

        monkeypatch.setattr(subprocess, "run", failing)

        with pytest.raises(ScanFailed, match="fatal: bad revision"):
            GitRunner().run(tmp_path, ["log"])
