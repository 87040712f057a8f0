# src/routine_tracker/storage/template_store.py

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime

from ..recurring.models import Recurrence, Template
from .database import Database, from_ts, to_ts

logger = logging.getLogger(__name__)


class TemplateStore:
    """
    `templates` table access.

    - save() is an upsert that never touches instanceCount/createdAt of an
      existing row (the count is owned by InstanceStore)
    - delete() cascades to instances, their `tasks` mirror rows and stats
      in one transaction
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _recurrence_to_str(recurrence: Recurrence | None) -> str | None:
        if recurrence is None:
            return None
        return json.dumps(recurrence.to_dict(), ensure_ascii=False)

    @staticmethod
    def _str_to_recurrence(s: str | None) -> Recurrence | None:
        if not s:
            return None
        try:
            raw = json.loads(s)
            return Recurrence.from_dict(raw) if isinstance(raw, dict) else None
        except (TypeError, ValueError):
            logger.exception("Failed to decode autoRepeat=%r; treating as no recurrence.", s)
            return None

    def _row_to_template(self, row: sqlite3.Row) -> Template:
        return Template(
            id=str(row["permanentId"]),
            title=str(row["templateTitle"] or ""),
            created_at=from_ts(row["createdAt"]) or datetime.fromtimestamp(0),
            location=row["location"],
            recurrence=self._str_to_recurrence(row["autoRepeat"]),
            live_instance_count=max(0, int(row["instanceCount"] or 0)),
        )

    def save(self, template: Template) -> None:
        conn = self._db.connect()
        try:
            conn.execute(
                """
                INSERT INTO templates
                    (permanentId, templateTitle, isTemplate, instanceCount, autoRepeat, location, createdAt)
                VALUES (?, ?, 1, ?, ?, ?, ?)
                ON CONFLICT(permanentId) DO UPDATE SET
                    templateTitle = excluded.templateTitle,
                    autoRepeat = excluded.autoRepeat,
                    location = excluded.location
                """,
                (
                    template.id,
                    template.title,
                    max(0, int(template.live_instance_count)),
                    self._recurrence_to_str(template.recurrence),
                    template.location,
                    to_ts(template.created_at),
                ),
            )
            # Instances without a title override show the template title.
            conn.execute(
                """
                UPDATE tasks
                SET title = ?
                WHERE id IN (
                    SELECT instanceId FROM template_instances
                    WHERE templateId = ? AND title IS NULL
                )
                """,
                (template.title, template.id),
            )
            conn.commit()
            logger.debug("Template saved id=%s title=%r", template.id, template.title)
        finally:
            conn.close()

    def get_by_id(self, template_id: str) -> Template | None:
        conn = self._db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM templates WHERE permanentId = ? AND isTemplate = 1",
                (template_id,),
            ).fetchone()
            return self._row_to_template(row) if row else None
        finally:
            conn.close()

    def get_all(self) -> list[Template]:
        conn = self._db.connect()
        try:
            rows = conn.execute(
                "SELECT * FROM templates WHERE isTemplate = 1 ORDER BY createdAt DESC"
            ).fetchall()
            return [self._row_to_template(r) for r in rows]
        finally:
            conn.close()

    def delete(self, template_id: str) -> bool:
        conn = self._db.connect()
        try:
            conn.execute(
                """
                DELETE FROM tasks
                WHERE id IN (SELECT instanceId FROM template_instances WHERE templateId = ?)
                """,
                (template_id,),
            )
            n_instances = conn.execute(
                "DELETE FROM template_instances WHERE templateId = ?", (template_id,)
            ).rowcount
            conn.execute("DELETE FROM template_stats WHERE templateId = ?", (template_id,))
            removed = conn.execute(
                "DELETE FROM templates WHERE permanentId = ?", (template_id,)
            ).rowcount
            conn.commit()
            logger.info(
                "Template deleted id=%s removed=%s instances=%s", template_id, removed, n_instances
            )
            return removed > 0
        finally:
            conn.close()
