"""Persistence store: typed, idempotent operations over the shared connection."""

import json
import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Self

from devtrack.settings import USER_SETTINGS_KEY, UserSettings, load_user_settings

from .connection import Database
from .models import (
    CachedGitTag,
    DailyLog,
    FileChange,
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
    utc_now,
)


class Store:
    """All durable state. Every method runs in one locked transaction."""

    def __init__(self, db: Database):
        self.db = db

    @classmethod
    def open(cls, data_dir: Path) -> Self:
        db = Database.in_directory(data_dir)
        db.connect()
        return cls(db)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Projects

    def create_project(self, project: Project) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO projects (id, name, path, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    project.id,
                    project.name,
                    project.path,
                    project.status.value,
                    _to_iso(project.created_at),
                    _to_iso(project.updated_at),
                ),
            )

    def get_project(self, project_id: str) -> Project | None:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM projects WHERE id = ?",
                (project_id,),
            ).fetchone()
        return _row_to_project(row) if row else None

    def get_projects(self, status: ProjectStatus | None = None) -> list[Project]:
        query = "SELECT * FROM projects"
        params: tuple = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status.value,)
        query += " ORDER BY name, id"

        with self.db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_project(row) for row in rows]

    def update_project_status(self, project_id: str, status: ProjectStatus) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE projects SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, _to_iso(utc_now()), project_id),
            )
        return cursor.rowcount > 0

    def delete_project(self, project_id: str) -> bool:
        """Delete a project and every row that refers to it."""
        with self.db.transaction() as conn:
            for table in ("git_tags", "milestones", "daily_logs", "inbox_items"):
                conn.execute(f"DELETE FROM {table} WHERE project_id = ?", (project_id,))
            cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return cursor.rowcount > 0

    # Daily logs

    def create_daily_log(self, log: DailyLog) -> None:
        """Write the log for (project_id, date), replacing any earlier one for that day."""
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO daily_logs
                (id, project_id, date, summary, category, files_changed,
                 ai_classification, user_override, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.id,
                    log.project_id,
                    log.date,
                    log.summary,
                    log.category.value,
                    json.dumps([f.to_dict() for f in log.files_changed]),
                    log.ai_classification,
                    log.user_override,
                    _to_iso(log.created_at),
                ),
            )

    def get_daily_log(self, project_id: str, log_date: str) -> DailyLog | None:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM daily_logs WHERE project_id = ? AND date = ?",
                (project_id, log_date),
            ).fetchone()
        return _row_to_daily_log(row) if row else None

    def get_daily_logs(self, project_id: str | None = None, limit: int = 30) -> list[DailyLog]:
        query = "SELECT * FROM daily_logs"
        params: list = []
        if project_id is not None:
            query += " WHERE project_id = ?"
            params.append(project_id)
        query += " ORDER BY date DESC, created_at DESC LIMIT ?"
        params.append(limit)

        with self.db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_daily_log(row) for row in rows]

    # Milestones

    def create_milestone(self, milestone: Milestone) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO milestones
                (id, project_id, title, description, version, git_tag,
                 status, source, target_date, completed_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    milestone.id,
                    milestone.project_id,
                    milestone.title,
                    milestone.description,
                    milestone.version,
                    milestone.git_tag,
                    milestone.status.value,
                    milestone.source.value,
                    milestone.target_date,
                    _to_iso(milestone.completed_at) if milestone.completed_at else None,
                    _to_iso(milestone.created_at),
                ),
            )

    def get_milestones(
        self,
        project_id: str | None = None,
        status: MilestoneStatus | None = None,
    ) -> list[Milestone]:
        clauses = []
        params: list = []
        if project_id is not None:
            clauses.append("project_id = ?")
            params.append(project_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)

        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        query = f"SELECT * FROM milestones{where} ORDER BY created_at DESC, id"

        with self.db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_milestone(row) for row in rows]

    def milestone_exists_for_tag(self, project_id: str, tag_name: str) -> bool:
        with self.db.transaction() as conn:
            count = conn.execute(
                "SELECT COUNT(*) FROM milestones WHERE project_id = ? AND git_tag = ?",
                (project_id, tag_name),
            ).fetchone()[0]
        return count > 0

    def update_milestone_status(self, milestone_id: str, status: MilestoneStatus) -> bool:
        completed_at = _to_iso(utc_now()) if status == MilestoneStatus.COMPLETED else None
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE milestones SET status = ?, completed_at = ? WHERE id = ?",
                (status.value, completed_at, milestone_id),
            )
        return cursor.rowcount > 0

    def delete_milestone(self, milestone_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM milestones WHERE id = ?", (milestone_id,))
        return cursor.rowcount > 0

    # Git tags

    def upsert_git_tag(self, tag: CachedGitTag) -> bool:
        """Insert or update a tag by (project_id, name). Returns True only if it was new."""
        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT id FROM git_tags WHERE project_id = ? AND name = ?",
                (tag.project_id, tag.name),
            ).fetchone()

            if existing:
                conn.execute(
                    """
                    UPDATE git_tags SET commit_hash = ?, date = ?, message = ?
                    WHERE project_id = ? AND name = ?
                    """,
                    (tag.commit_hash, tag.date, tag.message, tag.project_id, tag.name),
                )
                return False

            conn.execute(
                """
                INSERT INTO git_tags
                (id, project_id, name, commit_hash, date, message, first_seen_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tag.id,
                    tag.project_id,
                    tag.name,
                    tag.commit_hash,
                    tag.date,
                    tag.message,
                    _to_iso(tag.first_seen_at),
                ),
            )
            return True

    def get_cached_git_tags(self, project_id: str | None = None) -> list[CachedGitTag]:
        query = "SELECT * FROM git_tags"
        params: tuple = ()
        if project_id is not None:
            query += " WHERE project_id = ?"
            params = (project_id,)
        query += " ORDER BY date DESC, name"

        with self.db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_cached_git_tag(row) for row in rows]

    def delete_git_tags_for_project(self, project_id: str) -> int:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM git_tags WHERE project_id = ?", (project_id,))
        return cursor.rowcount

    # Inbox

    def create_inbox_item(self, item: InboxItem) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO inbox_items
                (id, item_type, project_id, question, context, suggested_actions,
                 status, answer, created_at, answered_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.item_type.value,
                    item.project_id,
                    item.question,
                    item.context,
                    json.dumps([a.to_dict() for a in item.suggested_actions]),
                    item.status.value,
                    item.answer,
                    _to_iso(item.created_at),
                    _to_iso(item.answered_at) if item.answered_at else None,
                ),
            )

    def get_inbox_items(self, status: InboxStatus | None = None) -> list[InboxItem]:
        query = "SELECT * FROM inbox_items"
        params: tuple = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status.value,)
        query += " ORDER BY created_at DESC, id"

        with self.db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_inbox_item(row) for row in rows]

    def answer_inbox_item(self, item_id: str, answer: str) -> bool:
        return self._close_inbox_item(item_id, InboxStatus.ANSWERED, answer)

    def skip_inbox_item(self, item_id: str) -> bool:
        return self._close_inbox_item(item_id, InboxStatus.SKIPPED, None)

    def _close_inbox_item(self, item_id: str, status: InboxStatus, answer: str | None) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE inbox_items SET status = ?, answer = ?, answered_at = ? WHERE id = ?",
                (status.value, answer, _to_iso(utc_now()), item_id),
            )
        return cursor.rowcount > 0

    # Settings

    def get_setting(self, key: str) -> str | None:
        with self.db.transaction() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_user_settings(self) -> UserSettings:
        """Load user settings; a missing or malformed blob yields the defaults.

        Store failures propagate: callers cannot tell "no settings" apart from
        "database unreadable" otherwise.
        """
        return load_user_settings(self.get_setting(USER_SETTINGS_KEY))

    def save_user_settings(self, settings: UserSettings) -> None:
        self.set_setting(USER_SETTINGS_KEY, settings.to_json())

    # Statistics

    def get_activity_stats(self, days: int, today: date | None = None) -> list[tuple[str, int]]:
        """Daily log counts per day over the trailing `days` window, oldest first."""
        today = today or date.today()
        cutoff = (today - timedelta(days=days)).isoformat()
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT date, COUNT(*) AS count FROM daily_logs
                WHERE date >= ?
                GROUP BY date ORDER BY date
                """,
                (cutoff,),
            ).fetchall()
        return [(row["date"], row["count"]) for row in rows]

    def get_category_distribution(self) -> list[tuple[str, int]]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT category, COUNT(*) AS count FROM daily_logs
                GROUP BY category ORDER BY count DESC, category
                """
            ).fetchall()
        return [(row["category"], row["count"]) for row in rows]


def _to_iso(value: datetime) -> str:
    return value.isoformat()


def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_dt_or_now(value: str | None) -> datetime:
    return _parse_dt(value) or utc_now()


def _load_json_list(value: str | None) -> list:
    try:
        data = json.loads(value) if value else []
    except json.JSONDecodeError:
        return []
    return data if isinstance(data, list) else []


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        status=ProjectStatus.from_storage(row["status"]),
        created_at=_parse_dt_or_now(row["created_at"]),
        updated_at=_parse_dt_or_now(row["updated_at"]),
    )


def _row_to_daily_log(row: sqlite3.Row) -> DailyLog:
    return DailyLog(
        id=row["id"],
        project_id=row["project_id"],
        date=row["date"],
        summary=row["summary"],
        category=LogCategory.from_storage(row["category"]),
        files_changed=[
            FileChange.from_dict(f) for f in _load_json_list(row["files_changed"]) if isinstance(f, dict)
        ],
        ai_classification=row["ai_classification"],
        user_override=row["user_override"],
        created_at=_parse_dt_or_now(row["created_at"]),
    )


def _row_to_milestone(row: sqlite3.Row) -> Milestone:
    return Milestone(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        description=row["description"],
        version=row["version"],
        git_tag=row["git_tag"],
        status=MilestoneStatus.from_storage(row["status"]),
        source=MilestoneSource.from_storage(row["source"]),
        target_date=row["target_date"],
        completed_at=_parse_dt(row["completed_at"]),
        created_at=_parse_dt_or_now(row["created_at"]),
    )


def _row_to_cached_git_tag(row: sqlite3.Row) -> CachedGitTag:
    return CachedGitTag(
        id=row["id"],
        project_id=row["project_id"],
        name=row["name"],
        commit_hash=row["commit_hash"],
        date=row["date"],
        message=row["message"],
        first_seen_at=_parse_dt_or_now(row["first_seen_at"]),
    )


def _row_to_inbox_item(row: sqlite3.Row) -> InboxItem:
    return InboxItem(
        id=row["id"],
        item_type=InboxItemType.from_storage(row["item_type"]),
        project_id=row["project_id"],
        question=row["question"],
        context=row["context"],
        suggested_actions=[
            SuggestedAction.from_dict(a)
            for a in _load_json_list(row["suggested_actions"])
            if isinstance(a, dict)
        ],
        status=InboxStatus.from_storage(row["status"]),
        answer=row["answer"],
        created_at=_parse_dt_or_now(row["created_at"]),
        answered_at=_parse_dt(row["answered_at"]),
    )
