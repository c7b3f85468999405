"""Exception hierarchy for devtrack.

Every application-specific exception inherits from DevtrackError so the CLI
can catch broad or narrow as needed.
"""


class DevtrackError(Exception):
    """Base exception for all devtrack errors."""


class ScannerError(DevtrackError):
    """A repository could not be scanned."""


class InvalidRepository(ScannerError):
    """Path failed validation or is not a git repository."""


class InvalidDateSpec(ScannerError):
    """Date argument for git failed validation."""


class ScanFailed(ScannerError):
    """git could not be spawned, timed out or exited non-zero."""


class StoreError(DevtrackError):
    """Persistence store failure."""


class DuplicateKeyError(StoreError):
    """A write hit a UNIQUE or PRIMARY KEY constraint."""


class ConstraintError(StoreError):
    """A write hit a NOT NULL, CHECK or FOREIGN KEY constraint."""


class StoreIOError(StoreError):
    """The database could not be opened, read or written."""


class AiCollaboratorError(DevtrackError):
    """AI provider communication failure or missing credentials."""


class ConfigError(DevtrackError):
    """Malformed user settings."""


class SchedulerError(DevtrackError):
    """A scan pass could not start (project list or settings unavailable)."""
