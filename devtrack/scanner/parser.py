"""Parsing of git text output.

git output is treated as untrusted: malformed lines are dropped, never raised on.
"""

from devtrack.database.models import FileChange, GitTag

TAG_FIELD_SEPARATOR = "|||"


def parse_numstat(output: str) -> list[FileChange]:
    """Parse `additions<TAB>deletions<TAB>path` lines.

    Binary files report "-" for both counts; non-numeric counts become 0.
    Paths may contain spaces, so everything after the second token is the path.
    """
    changes = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        changes.append(
            FileChange(
                path=" ".join(parts[2:]),
                additions=_parse_count(parts[0]),
                deletions=_parse_count(parts[1]),
            )
        )
    return changes


def parse_tags(output: str) -> list[GitTag]:
    """Parse `name|||hash|||date|||subject` records, keeping git's order."""
    tags = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split(TAG_FIELD_SEPARATOR)
        if len(parts) < 3:
            continue
        message = parts[3].strip() if len(parts) > 3 else ""
        tags.append(
            GitTag(
                name=parts[0].strip(),
                commit_hash=parts[1].strip(),
                date=parts[2].strip(),
                message=message or None,
            )
        )
    return tags


def format_changes_for_display(changes: list[FileChange]) -> str:
    lines = []
    for change in changes:
        if change.additions > 0 and change.deletions > 0:
            indicator = f"[+{change.additions}/-{change.deletions}]"
        elif change.additions > 0:
            indicator = f"[+{change.additions}]"
        elif change.deletions > 0:
            indicator = f"[-{change.deletions}]"
        else:
            indicator = ""
        lines.append(f"{indicator} {change.path}")
    return "\n".join(lines)


def _parse_count(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        return 0
