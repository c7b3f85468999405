"""Git repository scanner."""

from datetime import date
from pathlib import Path

from devtrack.database.models import DiffResult, FileChange, GitTag
from devtrack.errors import InvalidRepository
from devtrack.scanner.git import DEFAULT_COMMAND_TIMEOUT, GitRunner
from devtrack.scanner.parser import format_changes_for_display, parse_numstat, parse_tags
from devtrack.scanner.validation import validate_date_spec, validate_path

MAX_RECENT_COMMITS = 100

TAG_FORMAT = (
    "--format=%(refname:short)|||%(objectname:short)|||"
    "%(creatordate:iso-strict)|||%(contents:subject)"
)


class GitScanner:
    """Turns a repository path and a time window into structured change data.

    Every public method validates the path before git is spawned; a rejected
    path never reaches the subprocess.
    """

    def __init__(
        self,
        runner: GitRunner | None = None,
        max_path_length: int = 4096,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.runner = runner or GitRunner(timeout=command_timeout)
        self.max_path_length = max_path_length

    def is_repository(self, path: str | Path) -> bool:
        return (Path(path) / ".git").exists()

    def today_diff(self, path: str | Path) -> DiffResult:
        diff = self.diff_since(path, "midnight")
        diff.date = date.today().isoformat()
        return diff

    def diff_since(self, path: str | Path, since: str, until: str | None = None) -> DiffResult:
        repo = self._validated_repo(path)
        validate_date_spec(since)
        if until is not None:
            validate_date_spec(until)

        args = ["log", f"--since={since}", "--numstat", "--pretty=format:", "--no-merges"]
        if until is not None:
            args.append(f"--until={until}")

        output = self.runner.run(repo, args)
        return DiffResult(project_id="", date=since, files=parse_numstat(output))

    def uncommitted_changes(self, path: str | Path) -> list[FileChange]:
        repo = self._validated_repo(path)
        return parse_numstat(self.runner.run(repo, ["diff", "--numstat"]))

    def current_branch(self, path: str | Path) -> str:
        repo = self._validated_repo(path)
        return self.runner.run(repo, ["rev-parse", "--abbrev-ref", "HEAD"]).strip()

    def last_commit_message(self, path: str | Path) -> str:
        repo = self._validated_repo(path)
        return self.runner.run(repo, ["log", "-1", "--pretty=%B"]).strip()

    def recent_commit_subjects(self, path: str | Path, count: int = 10) -> list[str]:
        repo = self._validated_repo(path)
        count = max(0, min(count, MAX_RECENT_COMMITS))
        if count == 0:
            return []
        output = self.runner.run(repo, ["log", f"-{count}", "--pretty=format:%s", "--no-merges"])
        return output.splitlines()

    def list_tags(self, path: str | Path) -> list[GitTag]:
        """Tags newest first."""
        repo = self._validated_repo(path)
        output = self.runner.run(repo, ["tag", "-l", TAG_FORMAT, "--sort=-creatordate"])
        return parse_tags(output)

    def format_for_display(self, changes: list[FileChange]) -> str:
        return format_changes_for_display(changes)

    def _validated_repo(self, path: str | Path) -> Path:
        repo = validate_path(path, self.max_path_length)
        if not self.is_repository(repo):
            raise InvalidRepository(f"Not a git repository: {repo}")
        return repo
