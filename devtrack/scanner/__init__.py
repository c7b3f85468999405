"""Scanner module for git repositories."""

from .git import GitRunner
from .parser import format_changes_for_display, parse_numstat, parse_tags
from .scanner import GitScanner
from .validation import validate_date_spec, validate_path

__all__ = [
    "GitScanner",
    "GitRunner",
    "parse_numstat",
    "parse_tags",
    "format_changes_for_display",
    "validate_path",
    "validate_date_spec",
]
