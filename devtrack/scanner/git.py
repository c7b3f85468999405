"""git command execution."""

import logging
import subprocess
from pathlib import Path

from devtrack.errors import ScanFailed

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 60.0


class GitRunner:
    """Runs git with an argument vector inside a repository. Never uses a shell."""

    def __init__(self, executable: str = "git", timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def run(self, repo_path: Path, args: list[str]) -> str:
        """Run `git <args>` in repo_path and return stdout, or raise ScanFailed."""
        cmd = [self.executable] + args
        logger.debug("Running %s in %s", cmd, repo_path)

        try:
            result = subprocess.run(
                cmd,
                cwd=repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ScanFailed(f"git {args[0]} timed out after {self.timeout:g}s in {repo_path}") from e
        except OSError as e:
            raise ScanFailed(f"Failed to run git: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip() or f"exit status {result.returncode}"
            raise ScanFailed(f"git {args[0]} failed in {repo_path}: {stderr}")

        return result.stdout
