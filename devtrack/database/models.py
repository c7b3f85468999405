"""Data models for the database."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Self


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class StorageEnum(Enum):
    """Enum stored as its lowercase value, with a fallback member for unknown strings."""

    @classmethod
    def default(cls) -> Self:
        raise NotImplementedError

    @classmethod
    def from_storage(cls, value: str | None) -> Self:
        if value is not None:
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.default()


class ProjectStatus(StorageEnum):
    """Status of a tracked repository. Only ACTIVE projects are scanned."""

    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"

    @classmethod
    def default(cls) -> "ProjectStatus":
        return cls.ACTIVE


class LogCategory(StorageEnum):
    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    UI = "ui"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"
    OTHER = "other"

    @classmethod
    def default(cls) -> "LogCategory":
        return cls.OTHER


class MilestoneStatus(StorageEnum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def default(cls) -> "MilestoneStatus":
        return cls.PLANNED


class MilestoneSource(StorageEnum):
    MANUAL = "manual"
    TAG = "tag"
    AI = "ai"

    @classmethod
    def default(cls) -> "MilestoneSource":
        return cls.MANUAL


class InboxItemType(StorageEnum):
    DAILY_SUMMARY = "daily_summary"
    CLASSIFICATION = "classification"
    TODO_FOLLOWUP = "todo_followup"
    PLANNING = "planning"
    STALE_PROJECT = "stale_project"
    ANOMALY_DETECTION = "anomaly_detection"
    WEEKLY_REVIEW = "weekly_review"
    PATTERN_INSIGHT = "pattern_insight"
    MAJOR_UPDATE = "major_update"

    @classmethod
    def default(cls) -> "InboxItemType":
        return cls.STALE_PROJECT


class InboxStatus(StorageEnum):
    PENDING = "pending"
    ANSWERED = "answered"
    SKIPPED = "skipped"

    @classmethod
    def default(cls) -> "InboxStatus":
        return cls.PENDING


@dataclass
class Project:
    """Represents a tracked repository."""

    id: str
    name: str
    path: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, name: str, path: str) -> Self:
        return cls(id=new_id(), name=name, path=path)


@dataclass
class FileChange:
    """Per-file line counts from git numstat output."""

    path: str
    additions: int
    deletions: int

    def to_dict(self) -> dict:
        return {"path": self.path, "additions": self.additions, "deletions": self.deletions}

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(
            path=str(data.get("path", "")),
            additions=_as_int(data.get("additions")),
            deletions=_as_int(data.get("deletions")),
        )


@dataclass
class DiffResult:
    """One scan's output for one project over a time window.

    Totals are derived from the file list, so they always equal the sum of
    the per-file stats.
    """

    project_id: str
    date: str
    files: list[FileChange] = field(default_factory=list)

    @property
    def total_additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    @property
    def is_empty(self) -> bool:
        return self.total_additions == 0 and self.total_deletions == 0


@dataclass
class GitTag:
    """A tag as listed by git."""

    name: str
    commit_hash: str
    date: str
    message: str | None = None


@dataclass
class CachedGitTag:
    """A git tag persisted for a project. Natural key is (project_id, name)."""

    id: str
    project_id: str
    name: str
    commit_hash: str
    date: str
    message: str | None = None
    first_seen_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_git_tag(cls, project_id: str, tag: GitTag) -> Self:
        return cls(
            id=new_id(),
            project_id=project_id,
            name=tag.name,
            commit_hash=tag.commit_hash,
            date=tag.date,
            message=tag.message,
        )


@dataclass
class Milestone:
    """A project achievement, optionally derived from a git tag."""

    id: str
    project_id: str
    title: str
    description: str | None = None
    version: str | None = None
    git_tag: str | None = None
    status: MilestoneStatus = MilestoneStatus.PLANNED
    source: MilestoneSource = MilestoneSource.MANUAL
    target_date: str | None = None
    completed_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, project_id: str, title: str) -> Self:
        return cls(id=new_id(), project_id=project_id, title=title)

    @classmethod
    def from_tag(cls, project_id: str, tag: CachedGitTag) -> Self:
        now = utc_now()
        return cls(
            id=new_id(),
            project_id=project_id,
            title=tag.name,
            description=tag.message,
            version=tag.name,
            git_tag=tag.name,
            status=MilestoneStatus.COMPLETED,
            source=MilestoneSource.TAG,
            completed_at=now,
            created_at=now,
        )


@dataclass
class DailyLog:
    """A day's categorized progress summary. Natural key is (project_id, date)."""

    id: str
    project_id: str
    date: str  # YYYY-MM-DD
    summary: str
    category: LogCategory = LogCategory.OTHER
    files_changed: list[FileChange] = field(default_factory=list)
    ai_classification: str | None = None
    user_override: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class SuggestedAction:
    id: str
    label: str
    icon: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "icon": self.icon}

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(id=str(data.get("id", "")), label=str(data.get("label", "")), icon=data.get("icon"))


@dataclass
class InboxItem:
    """A notification or question surfaced to the user."""

    id: str
    item_type: InboxItemType
    question: str
    project_id: str | None = None
    context: str | None = None
    suggested_actions: list[SuggestedAction] = field(default_factory=list)
    status: InboxStatus = InboxStatus.PENDING
    answer: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    answered_at: datetime | None = None

    @classmethod
    def new(cls, item_type: InboxItemType, question: str, project_id: str | None = None) -> Self:
        return cls(id=new_id(), item_type=item_type, question=question, project_id=project_id)


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
