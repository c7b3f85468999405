"""Database module for devtrack."""

from .connection import Database
from .models import (
    CachedGitTag,
    DailyLog,
    DiffResult,
    FileChange,
    GitTag,
    InboxItem,
    InboxItemType,
    InboxStatus,
    LogCategory,
    Milestone,
    MilestoneSource,
    MilestoneStatus,
    Project,
    ProjectStatus,
    SuggestedAction,
)
from .schema import create_schema
from .store import Store

__all__ = [
    "Database",
    "Store",
    "create_schema",
    "CachedGitTag",
    "DailyLog",
    "DiffResult",
    "FileChange",
    "GitTag",
    "InboxItem",
    "InboxItemType",
    "InboxStatus",
    "LogCategory",
    "Milestone",
    "MilestoneSource",
    "MilestoneStatus",
    "Project",
    "ProjectStatus",
    "SuggestedAction",
]
