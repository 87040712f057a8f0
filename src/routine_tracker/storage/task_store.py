# src/routine_tracker/storage/task_store.py

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .database import Database, from_ts, to_ts

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskRow:
    """One row of the `tasks` table: the flat list the UI reads for every kind."""

    id: str
    title: str
    completed: bool
    created_at: datetime
    due_date: datetime | None = None
    kind: str = "one_off"


class TaskStore:
    """
    `tasks` table access.

    One-off tasks live only here. Permanent instances are mirrored here by
    InstanceStore so the flat list shows them too; templates are not.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> TaskRow:
        return TaskRow(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            completed=bool(row["completed"]),
            created_at=from_ts(row["created_at"]) or datetime.fromtimestamp(0),
            due_date=from_ts(row["due_date"]),
            kind=str(row["kind"] or "one_off"),
        )

    def save(self, task: TaskRow) -> None:
        conn = self._db.connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO tasks (id, title, completed, created_at, due_date, kind)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.title,
                    1 if task.completed else 0,
                    to_ts(task.created_at),
                    to_ts(task.due_date),
                    task.kind,
                ),
            )
            conn.commit()
            logger.debug("Task saved id=%s kind=%s completed=%s", task.id, task.kind, task.completed)
        finally:
            conn.close()

    def get_by_id(self, task_id: str) -> TaskRow | None:
        conn = self._db.connect()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def get_all(self) -> list[TaskRow]:
        """All rows, newest first."""
        conn = self._db.connect()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def list_for_day(self, day: date) -> list[TaskRow]:
        """Rows created on `day` or due on `day` (local time), newest first."""
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        lo, hi = start.timestamp(), end.timestamp()

        conn = self._db.connect()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE (created_at >= ? AND created_at < ?)
                   OR (due_date IS NOT NULL AND due_date >= ? AND due_date < ?)
                ORDER BY created_at DESC
                """,
                (lo, hi, lo, hi),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def delete(self, task_id: str) -> bool:
        conn = self._db.connect()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            logger.debug("Task deleted id=%s removed=%s", task_id, cur.rowcount)
            return cur.rowcount > 0
        finally:
            conn.close()
