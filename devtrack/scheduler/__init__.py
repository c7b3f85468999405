"""Scan scheduling: periodic and on-demand passes over active projects."""

from .events import LoggingNotifier, Notifier
from .report import ScanReport, SchedulerStatus, TagSyncResult
from .scheduler import ScanScheduler
from .state import ScanState

__all__ = [
    "LoggingNotifier",
    "Notifier",
    "ScanReport",
    "ScanScheduler",
    "ScanState",
    "SchedulerStatus",
    "TagSyncResult",
]
