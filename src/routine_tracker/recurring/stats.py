# src/routine_tracker/recurring/stats.py

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from ..core.ports import StatsRepo, TemplateRepo
from .models import StatsSummary, TemplateStats

logger = logging.getLogger(__name__)


def completion_rate(completions: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return completions / total


def apply_completion(
    stats: TemplateStats,
    completed_at: datetime,
    *,
    live_instance_count: int,
) -> TemplateStats:
    """
    Fold one completion event into `stats`.

    The streak counts consecutive completion events: a skipped or deleted
    instance in between does not reset it.
    """
    count = stats.completion_count + 1
    streak = stats.current_streak + 1

    buckets = list(stats.by_weekday)
    buckets[completed_at.isoweekday() - 1] += 1

    return replace(
        stats,
        completion_count=count,
        current_streak=streak,
        max_streak=max(stats.max_streak, streak),
        by_weekday=tuple(buckets),
        completion_rate=completion_rate(count, live_instance_count),
        last_updated_at=completed_at,
    )


def summarize(stats: TemplateStats) -> StatsSummary:
    """Most/least likely ISO weekday; ties go to the earlier day in the week."""
    most = least = None
    if stats.completion_count > 0:
        counts = stats.by_weekday
        most = max(range(7), key=lambda i: (counts[i], -i)) + 1
        least = min(range(7), key=lambda i: (counts[i], i)) + 1
    return StatsSummary(
        template_id=stats.template_id,
        completion_count=stats.completion_count,
        completion_rate=stats.completion_rate,
        most_likely_weekday=most,
        least_likely_weekday=least,
    )


class StatsAggregator:
    """Maintains per-template completion counters incrementally."""

    def __init__(self, stats: StatsRepo, templates: TemplateRepo) -> None:
        self._stats = stats
        self._templates = templates

    def record_completion(self, template_id: str, completed_at: datetime) -> TemplateStats:
        current = self._stats.get(template_id) or TemplateStats(template_id=template_id)

        template = self._templates.get_by_id(template_id)
        live = template.live_instance_count if template is not None else 0

        updated = apply_completion(current, completed_at, live_instance_count=live)
        self._stats.save(updated)
        logger.info(
            "Completion recorded template=%s count=%s streak=%s/%s rate=%.2f",
            template_id,
            updated.completion_count,
            updated.current_streak,
            updated.max_streak,
            updated.completion_rate,
        )
        return updated
