"""devtrack - Tracks daily development activity across local git repositories."""

__version__ = "0.1.0"

from devtrack.database import Database, Store
from devtrack.scanner import GitScanner
from devtrack.scheduler import ScanScheduler

__all__ = ["Database", "GitScanner", "ScanScheduler", "Store"]
