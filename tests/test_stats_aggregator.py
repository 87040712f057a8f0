# tests/test_stats_aggregator.py

from __future__ import annotations

from datetime import datetime

from routine_tracker.recurring.factory import create_instance, create_template
from routine_tracker.recurring.models import TemplateStats
from routine_tracker.recurring.stats import StatsAggregator, apply_completion, completion_rate, summarize
from routine_tracker.storage.instance_store import InstanceStore
from routine_tracker.storage.stats_store import StatsStore
from routine_tracker.storage.template_store import TemplateStore

NOW = datetime(2024, 1, 1, 8, 0)


def _template_with_instances(templates: TemplateStore, instances: InstanceStore, n: int) -> str:
    tpl = create_template("Stretch", now=NOW)
    templates.save(tpl)
    for _ in range(n):
        instances.save(create_instance(tpl, now=NOW))
    return tpl.id


def test_three_completions_build_streak_and_weekday_buckets(
    templates: TemplateStore, instances: InstanceStore, stats: StatsStore
) -> None:
    template_id = _template_with_instances(templates, instances, 3)
    agg = StatsAggregator(stats, templates)

    assert stats.get(template_id) is None

    # Monday, Tuesday, Friday
    for day in (datetime(2024, 1, 1, 20), datetime(2024, 1, 2, 7), datetime(2024, 1, 5, 12)):
        result = agg.record_completion(template_id, day)

    assert result.completion_count == 3
    assert result.current_streak == 3
    assert result.max_streak == 3
    assert sum(result.by_weekday) == 3
    assert result.by_weekday == (1, 1, 0, 0, 1, 0, 0)
    assert result.completion_rate == 1.0

    stored = stats.get(template_id)
    assert stored is not None
    assert stored.by_weekday == result.by_weekday
    assert stored.last_updated_at == datetime(2024, 1, 5, 12)


def test_rate_is_zero_without_live_instances(templates: TemplateStore, stats: StatsStore) -> None:
    tpl = create_template("Orphaned stats", now=NOW)
    templates.save(tpl)

    result = StatsAggregator(stats, templates).record_completion(tpl.id, NOW)

    assert result.completion_count == 1
    assert result.completion_rate == 0.0


def test_rate_can_exceed_one_after_instances_are_deleted() -> None:
    stats = TemplateStats(template_id="t", completion_count=2, current_streak=2, max_streak=2)
    updated = apply_completion(stats, NOW, live_instance_count=1)
    assert updated.completion_count == 3
    assert updated.completion_rate == 3.0


def test_max_streak_is_kept_when_current_is_lower() -> None:
    stats = TemplateStats(template_id="t", completion_count=9, current_streak=0, max_streak=7)
    updated = apply_completion(stats, NOW, live_instance_count=10)
    assert updated.current_streak == 1
    assert updated.max_streak == 7


def test_completion_rate_helper() -> None:
    assert completion_rate(0, 0) == 0.0
    assert completion_rate(3, 4) == 0.75


def test_summarize_picks_most_and_least_likely_days() -> None:
    stats = TemplateStats(
        template_id="t",
        completion_count=6,
        by_weekday=(0, 3, 1, 0, 2, 0, 0),
    )
    summary = summarize(stats)
    assert summary.most_likely_weekday == 2
    assert summary.preferred_day == "Tuesday"
    # ties resolve to the earliest day in the week
    assert summary.least_likely_weekday == 1


def test_summarize_empty_stats() -> None:
    summary = summarize(TemplateStats(template_id="t"))
    assert summary.most_likely_weekday is None
    assert summary.preferred_day == ""
