"""Results of scan passes and tag syncs."""

from dataclasses import dataclass, field
from datetime import datetime

from devtrack.database.models import CachedGitTag, DiffResult, utc_now


@dataclass
class TagSyncResult:
    project_id: str
    total_tags: int = 0
    new_tags: list[CachedGitTag] = field(default_factory=list)
    milestones_created: int = 0


@dataclass
class ScanReport:
    """Counts and per-project outcomes of one pass."""

    kind: str
    projects_scanned: int = 0
    projects_with_changes: int = 0
    inbox_items_created: int = 0
    daily_logs_written: int = 0
    tags_synced: int = 0
    milestones_created: int = 0
    diffs: dict[str, DiffResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or utc_now()
        return (end - self.started_at).total_seconds()

    def event_payload(self) -> dict:
        return {
            "projects_scanned": self.projects_scanned,
            "projects_with_changes": self.projects_with_changes,
            "inbox_items_created": self.inbox_items_created,
            "tags_synced": self.tags_synced,
            "milestones_created": self.milestones_created,
            "failures": len(self.failures),
        }


@dataclass
class SchedulerStatus:
    is_running: bool
    is_scanning: bool
    last_scan: datetime | None


def format_duration(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
