"""Tests for database module."""

import sqlite3
from pathlib import Path

import pytest

from devtrack.database import Database
from devtrack.database.connection import translate_error
from devtrack.database.schema import create_schema, migrate_add_column
from devtrack.errors import ConstraintError, DuplicateKeyError, StoreIOError


class TestDatabase:
    """Tests for Database class."""

    def test_creates_database_file(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        with Database(db_path):
            assert db_path.exists()

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subdir" / "nested" / "test.db"
        with Database(db_path):
            assert db_path.exists()

    def test_in_directory_uses_default_filename(self, tmp_path: Path) -> None:
        db = Database.in_directory(tmp_path)
        assert db.db_path == tmp_path / "devtrack.db"

    def test_schema_creates_tables(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            tables = db.conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            table_names = {row["name"] for row in tables}

            assert {"projects", "daily_logs", "milestones", "git_tags", "inbox_items", "settings"} <= table_names

    def test_foreign_keys_enabled(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            result = db.conn.execute("PRAGMA foreign_keys").fetchone()
            assert result[0] == 1

    def test_reopen_is_idempotent(self, tmp_path: Path):
        db_path = tmp_path / "test.db"
        with Database(db_path) as db:
            db.conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")
            db.conn.commit()

        with Database(db_path) as db:
            row = db.conn.execute("SELECT value FROM settings WHERE key = 'k'").fetchone()
            assert row["value"] == "v"

    def test_unopenable_path_raises_store_io_error(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(StoreIOError):
            Database(blocker / "test.db").connect()


class TestTransaction:
    def test_commits_on_success(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            with db.transaction() as conn:
                conn.execute("INSERT INTO settings (key, value) VALUES ('a', '1')")

            assert db.conn.execute("SELECT COUNT(*) FROM settings").fetchone()[0] == 1

    def test_rolls_back_on_error_and_stays_usable(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            with pytest.raises(RuntimeError):
                with db.transaction() as conn:
                    conn.execute("INSERT INTO settings (key, value) VALUES ('a', '1')")
                    raise RuntimeError("boom")

            with db.transaction() as conn:
                conn.execute("INSERT INTO settings (key, value) VALUES ('b', '2')")

            keys = [row["key"] for row in db.conn.execute("SELECT key FROM settings")]
            assert keys == ["b"]

    def test_sqlite_errors_are_translated(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            with db.transaction() as conn:
                conn.execute("INSERT INTO settings (key, value) VALUES ('a', '1')")

            with pytest.raises(DuplicateKeyError):
                with db.transaction() as conn:
                    conn.execute("INSERT INTO settings (key, value) VALUES ('a', '2')")

            with pytest.raises(ConstraintError):
                with db.transaction() as conn:
                    conn.execute(
                        "INSERT INTO daily_logs (id, project_id, date, summary, created_at) "
                        "VALUES ('l1', 'missing-project', '2024-01-01', 's', '2024-01-01')"
                    )

            # Lock was released and the connection is still healthy
            with db.transaction() as conn:
                assert conn.execute("SELECT value FROM settings WHERE key = 'a'").fetchone()[0] == "1"


class TestTranslateError:
    def test_unique_violation(self):
        error = sqlite3.IntegrityError("UNIQUE constraint failed: settings.key")
        assert isinstance(translate_error(error), DuplicateKeyError)

    def test_other_integrity_error(self):
        error = sqlite3.IntegrityError("NOT NULL constraint failed: projects.name")
        assert isinstance(translate_error(error), ConstraintError)

    def test_operational_error(self):
        error = sqlite3.OperationalError("disk I/O error")
        assert isinstance(translate_error(error), StoreIOError)


class TestMigrations:
    def _create_old_schema(self, db_path: Path) -> None:
        conn = sqlite3.connect(db_path)
        conn.executescript(
            """
            CREATE TABLE projects (
                id TEXT PRIMARY KEY, name TEXT NOT NULL, path TEXT NOT NULL UNIQUE,
                status TEXT NOT NULL DEFAULT 'active', created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE milestones (
                id TEXT PRIMARY KEY, project_id TEXT NOT NULL, title TEXT NOT NULL,
                description TEXT, version TEXT, git_tag TEXT,
                status TEXT NOT NULL DEFAULT 'planned', target_date TEXT,
                completed_at TEXT, created_at TEXT NOT NULL
            );
            CREATE TABLE git_tags (
                id TEXT PRIMARY KEY, project_id TEXT NOT NULL, name TEXT NOT NULL,
                commit_hash TEXT NOT NULL, date TEXT NOT NULL, first_seen_at TEXT NOT NULL,
                UNIQUE(project_id, name)
            );
            INSERT INTO projects VALUES ('p1', 'old', '/old', 'active', '2024-01-01', '2024-01-01');
            INSERT INTO milestones (id, project_id, title, created_at)
                VALUES ('m1', 'p1', 'legacy', '2024-01-01');
            """
        )
        conn.commit()
        conn.close()

    def _columns(self, conn: sqlite3.Connection, table: str) -> set[str]:
        return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}

    def test_adds_missing_columns_to_old_tables(self, tmp_path: Path):
        db_path = tmp_path / "old.db"
        self._create_old_schema(db_path)

        with Database(db_path) as db:
            assert "source" in self._columns(db.conn, "milestones")
            assert "message" in self._columns(db.conn, "git_tags")
            row = db.conn.execute("SELECT title, source FROM milestones WHERE id = 'm1'").fetchone()
            assert row["title"] == "legacy"
            assert row["source"] == "manual"

    def test_migrations_are_idempotent(self, tmp_path: Path):
        db_path = tmp_path / "old.db"
        self._create_old_schema(db_path)

        with Database(db_path):
            pass
        with Database(db_path) as db:
            create_schema(db.conn)
            assert "source" in self._columns(db.conn, "milestones")

    def test_migrate_add_column_reports_whether_added(self, tmp_path: Path):
        with Database(tmp_path / "test.db") as db:
            assert migrate_add_column(db.conn, "settings", "note", "TEXT") is True
            assert migrate_add_column(db.conn, "settings", "note", "TEXT") is False
