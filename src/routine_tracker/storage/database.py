# src/routine_tracker/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


def to_ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


def from_ts(value: float | None) -> datetime | None:
    return datetime.fromtimestamp(float(value)) if value is not None else None


class Database:
    """
    Explicit handle to the SQLite file shared by all stores.

    Stores receive this object at construction time instead of importing a
    module-level connection.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - connect() hands out a fresh connection; callers close it
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("Database ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self.connect()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    due_date REAL,
                    kind TEXT NOT NULL DEFAULT 'one_off'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS templates (
                    permanentId TEXT PRIMARY KEY,
                    templateTitle TEXT NOT NULL,
                    isTemplate INTEGER NOT NULL DEFAULT 1,
                    instanceCount INTEGER NOT NULL DEFAULT 0,
                    autoRepeat TEXT,
                    location TEXT,
                    createdAt REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS template_instances (
                    instanceId TEXT NOT NULL,
                    templateId TEXT NOT NULL,
                    createdAt REAL NOT NULL,
                    dueDate REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    title TEXT,
                    location TEXT,
                    PRIMARY KEY (instanceId, templateId),
                    FOREIGN KEY (templateId) REFERENCES templates(permanentId) ON DELETE CASCADE
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS template_stats (
                    templateId TEXT PRIMARY KEY,
                    completionCount INTEGER NOT NULL DEFAULT 0,
                    completionRate REAL NOT NULL DEFAULT 0,
                    currentStreak INTEGER NOT NULL DEFAULT 0,
                    maxStreak INTEGER NOT NULL DEFAULT 0,
                    completionMon INTEGER NOT NULL DEFAULT 0,
                    completionTue INTEGER NOT NULL DEFAULT 0,
                    completionWed INTEGER NOT NULL DEFAULT 0,
                    completionThu INTEGER NOT NULL DEFAULT 0,
                    completionFri INTEGER NOT NULL DEFAULT 0,
                    completionSat INTEGER NOT NULL DEFAULT 0,
                    completionSun INTEGER NOT NULL DEFAULT 0,
                    lastUpdatedAt REAL NOT NULL,
                    FOREIGN KEY (templateId) REFERENCES templates(permanentId) ON DELETE CASCADE
                )
                """
            )

            # Migrations (safe): older files predate these columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("Database migration: added column %s.%s", table, name)

            add_col("tasks", "due_date", "REAL")
            add_col("tasks", "kind", "TEXT NOT NULL DEFAULT 'one_off'")
            add_col("template_instances", "dueDate", "REAL")
            add_col("template_instances", "completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("template_instances", "title", "TEXT")
            add_col("template_instances", "location", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(due_date)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_instances_template ON template_instances(templateId)"
            )

            conn.commit()
        finally:
            conn.close()
