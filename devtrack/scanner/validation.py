"""Validation of everything that ends up on a git command line."""

import re
from pathlib import Path

from devtrack.errors import InvalidDateSpec, InvalidRepository

MAX_DATE_SPEC_LENGTH = 50

PATH_FORBIDDEN_CHARS = frozenset("`$|&;><(){}[]!\n\r")
DATE_FORBIDDEN_CHARS = frozenset("`$|&;><(){}!\n\r")

DATE_SPEC_PATTERNS = [
    re.compile(r"\d{4}-\d{2}-\d{2}"),
    re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}"),
    re.compile(r"midnight"),
    re.compile(r"today"),
    re.compile(r"yesterday"),
    re.compile(r"\d+ (day|week|month|year)s? ago"),
]


def validate_path(path: str | Path, max_path_length: int = 4096) -> Path:
    """Return the canonical form of a repository directory or raise InvalidRepository."""
    candidate = Path(path)

    if not candidate.exists():
        raise InvalidRepository(f"Path does not exist: {candidate}")
    if not candidate.is_dir():
        raise InvalidRepository(f"Path is not a directory: {candidate}")

    try:
        canonical = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise InvalidRepository(f"Failed to resolve path {candidate}: {e}") from e

    path_str = str(canonical)
    if len(path_str) > max_path_length:
        raise InvalidRepository(f"Path too long ({len(path_str)} characters): {candidate}")

    for char in sorted(PATH_FORBIDDEN_CHARS):
        if char in path_str:
            raise InvalidRepository(f"Path contains invalid character {char!r}: {candidate}")

    return canonical


def validate_date_spec(spec: str) -> str:
    """Accept known git date forms; otherwise allow only short, metacharacter-free strings."""
    for pattern in DATE_SPEC_PATTERNS:
        if pattern.fullmatch(spec):
            return spec

    for char in sorted(DATE_FORBIDDEN_CHARS):
        if char in spec:
            raise InvalidDateSpec(f"Date parameter contains invalid character {char!r}")

    if len(spec) > MAX_DATE_SPEC_LENGTH:
        raise InvalidDateSpec("Date parameter too long")

    return spec
