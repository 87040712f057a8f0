# src/routine_tracker/storage/instance_store.py

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from ..core.errors import InvariantViolation, NotFoundError
from ..recurring.models import Instance
from .database import Database, from_ts, to_ts

logger = logging.getLogger(__name__)


class InstanceStore:
    """
    `template_instances` table access.

    Every write also maintains:
    - the instance's mirror row in `tasks` (kind='permanent'), so the flat
      task list shows it
    - the owning template's instanceCount (+1 on first insert, -1 on an
      actual delete, floored at zero)

    Each write runs in a single transaction.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_instance(row: sqlite3.Row) -> Instance:
        return Instance(
            id=str(row["instanceId"]),
            template_id=str(row["templateId"]),
            created_at=from_ts(row["createdAt"]) or datetime.fromtimestamp(0),
            due_date=from_ts(row["dueDate"]),
            completed=bool(row["completed"]),
            title=row["title"],
            location=row["location"],
        )

    def save(self, instance: Instance) -> None:
        conn = self._db.connect()
        try:
            cur = conn.cursor()

            tpl = cur.execute(
                "SELECT templateTitle FROM templates WHERE permanentId = ? AND isTemplate = 1",
                (instance.template_id,),
            ).fetchone()
            if tpl is None:
                raise NotFoundError("template", instance.template_id)

            existing = cur.execute(
                "SELECT templateId FROM template_instances WHERE instanceId = ?",
                (instance.id,),
            ).fetchone()
            if existing is not None and existing["templateId"] != instance.template_id:
                raise InvariantViolation(
                    f"instance {instance.id!r} belongs to template {existing['templateId']!r}"
                )

            cur.execute(
                """
                INSERT OR REPLACE INTO template_instances
                    (instanceId, templateId, createdAt, dueDate, completed, title, location)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    instance.id,
                    instance.template_id,
                    to_ts(instance.created_at),
                    to_ts(instance.due_date),
                    1 if instance.completed else 0,
                    instance.title,
                    instance.location,
                ),
            )
            cur.execute(
                """
                INSERT OR REPLACE INTO tasks (id, title, completed, created_at, due_date, kind)
                VALUES (?, ?, ?, ?, ?, 'permanent')
                """,
                (
                    instance.id,
                    instance.title or tpl["templateTitle"],
                    1 if instance.completed else 0,
                    to_ts(instance.created_at),
                    to_ts(instance.due_date),
                ),
            )
            if existing is None:
                cur.execute(
                    "UPDATE templates SET instanceCount = instanceCount + 1 WHERE permanentId = ?",
                    (instance.template_id,),
                )

            conn.commit()
            logger.debug(
                "Instance saved id=%s template=%s new=%s completed=%s",
                instance.id,
                instance.template_id,
                existing is None,
                instance.completed,
            )
        finally:
            conn.close()

    def get_by_id(self, instance_id: str) -> Instance | None:
        conn = self._db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM template_instances WHERE instanceId = ?", (instance_id,)
            ).fetchone()
            return self._row_to_instance(row) if row else None
        finally:
            conn.close()

    def get_all(self) -> list[Instance]:
        conn = self._db.connect()
        try:
            rows = conn.execute("SELECT * FROM template_instances ORDER BY createdAt DESC").fetchall()
            return [self._row_to_instance(r) for r in rows]
        finally:
            conn.close()

    def get_by_template(self, template_id: str) -> list[Instance]:
        conn = self._db.connect()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM template_instances
                WHERE templateId = ?
                ORDER BY createdAt DESC
                """,
                (template_id,),
            ).fetchall()
            return [self._row_to_instance(r) for r in rows]
        finally:
            conn.close()

    def delete(self, instance_id: str) -> bool:
        conn = self._db.connect()
        try:
            cur = conn.cursor()
            row = cur.execute(
                "SELECT templateId FROM template_instances WHERE instanceId = ?", (instance_id,)
            ).fetchone()

            cur.execute("DELETE FROM tasks WHERE id = ?", (instance_id,))
            if row is None:
                conn.commit()
                logger.debug("Instance delete: id=%s not present", instance_id)
                return False

            cur.execute("DELETE FROM template_instances WHERE instanceId = ?", (instance_id,))
            cur.execute(
                """
                UPDATE templates
                SET instanceCount = MAX(instanceCount - 1, 0)
                WHERE permanentId = ?
                """,
                (row["templateId"],),
            )
            conn.commit()
            logger.debug("Instance deleted id=%s template=%s", instance_id, row["templateId"])
            return True
        finally:
            conn.close()
