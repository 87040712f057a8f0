# src/routine_tracker/storage/stats_store.py

from __future__ import annotations

import logging
import sqlite3

from ..recurring.models import TemplateStats
from .database import Database, from_ts, to_ts

logger = logging.getLogger(__name__)

# Monday first, matching TemplateStats.by_weekday.
_WEEKDAY_COLUMNS = (
    "completionMon",
    "completionTue",
    "completionWed",
    "completionThu",
    "completionFri",
    "completionSat",
    "completionSun",
)


class StatsStore:
    """`template_stats` table access. Rows are created lazily by the aggregator."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_stats(row: sqlite3.Row) -> TemplateStats:
        return TemplateStats(
            template_id=str(row["templateId"]),
            completion_count=int(row["completionCount"] or 0),
            completion_rate=float(row["completionRate"] or 0.0),
            current_streak=int(row["currentStreak"] or 0),
            max_streak=int(row["maxStreak"] or 0),
            by_weekday=tuple(int(row[c] or 0) for c in _WEEKDAY_COLUMNS),
            last_updated_at=from_ts(row["lastUpdatedAt"]),
        )

    def save(self, stats: TemplateStats) -> None:
        if len(stats.by_weekday) != 7:
            raise ValueError(f"by_weekday must have 7 buckets, got {len(stats.by_weekday)}")

        cols = ", ".join(_WEEKDAY_COLUMNS)
        conn = self._db.connect()
        try:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO template_stats
                    (templateId, completionCount, completionRate, currentStreak, maxStreak,
                     {cols}, lastUpdatedAt)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stats.template_id,
                    stats.completion_count,
                    stats.completion_rate,
                    stats.current_streak,
                    stats.max_streak,
                    *stats.by_weekday,
                    to_ts(stats.last_updated_at) or 0.0,
                ),
            )
            conn.commit()
            logger.debug(
                "Stats saved template=%s count=%s streak=%s",
                stats.template_id,
                stats.completion_count,
                stats.current_streak,
            )
        finally:
            conn.close()

    def get(self, template_id: str) -> TemplateStats | None:
        conn = self._db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM template_stats WHERE templateId = ?", (template_id,)
            ).fetchone()
            return self._row_to_stats(row) if row else None
        finally:
            conn.close()

    def get_all(self) -> list[TemplateStats]:
        conn = self._db.connect()
        try:
            rows = conn.execute("SELECT * FROM template_stats").fetchall()
            return [self._row_to_stats(r) for r in rows]
        finally:
            conn.close()

    def delete(self, template_id: str) -> bool:
        conn = self._db.connect()
        try:
            cur = conn.execute("DELETE FROM template_stats WHERE templateId = ?", (template_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()
