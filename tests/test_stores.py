# tests/test_stores.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from routine_tracker.core.errors import InvariantViolation, NotFoundError
from routine_tracker.recurring.factory import create_instance, create_template
from routine_tracker.recurring.models import Recurrence, TemplateStats
from routine_tracker.storage.database import Database
from routine_tracker.storage.instance_store import InstanceStore
from routine_tracker.storage.stats_store import StatsStore
from routine_tracker.storage.task_store import TaskRow, TaskStore
from routine_tracker.storage.template_store import TemplateStore

NOW = datetime(2024, 1, 3, 9, 0)


def test_template_save_is_idempotent(templates: TemplateStore) -> None:
    tpl = create_template(
        "Water plants",
        now=NOW,
        location="Balcony",
        recurrence=Recurrence("weekly", weekday=1),
    )
    templates.save(tpl)
    templates.save(tpl)

    all_templates = templates.get_all()
    assert len(all_templates) == 1
    assert all_templates[0] == tpl


def test_template_get_missing_returns_none(templates: TemplateStore, instances: InstanceStore) -> None:
    assert templates.get_by_id("tpl_missing") is None
    assert instances.get_by_id("inst_missing") is None


def test_template_upsert_keeps_instance_count(templates: TemplateStore, instances: InstanceStore) -> None:
    tpl = create_template("Read", now=NOW)
    templates.save(tpl)
    instances.save(create_instance(tpl, now=NOW))
    instances.save(create_instance(tpl, now=NOW))

    # stale copy with live_instance_count=0 must not reset the counter
    templates.save(replace(tpl, title="Read a chapter"))

    loaded = templates.get_by_id(tpl.id)
    assert loaded is not None
    assert loaded.title == "Read a chapter"
    assert loaded.live_instance_count == 2


def test_instance_save_counts_only_new_rows(
    templates: TemplateStore, instances: InstanceStore, task_rows: TaskStore
) -> None:
    tpl = create_template("Gym", now=NOW)
    templates.save(tpl)
    inst = create_instance(tpl, now=NOW, due_date=datetime(2024, 1, 4))

    instances.save(inst)
    instances.save(inst)
    instances.save(replace(inst, completed=True))

    loaded_tpl = templates.get_by_id(tpl.id)
    assert loaded_tpl is not None
    assert loaded_tpl.live_instance_count == 1

    loaded = instances.get_by_id(inst.id)
    assert loaded is not None
    assert loaded.completed is True
    assert loaded.due_date == datetime(2024, 1, 4)

    mirror = task_rows.get_by_id(inst.id)
    assert mirror is not None
    assert mirror.kind == "permanent"
    assert mirror.title == "Gym"
    assert mirror.completed is True


def test_instance_requires_existing_template(templates: TemplateStore, instances: InstanceStore) -> None:
    tpl = create_template("Ghost", now=NOW)
    with pytest.raises(NotFoundError):
        instances.save(create_instance(tpl, now=NOW))
    assert instances.get_all() == []


def test_instance_cannot_move_to_another_template(
    templates: TemplateStore, instances: InstanceStore
) -> None:
    a = create_template("A", now=NOW)
    b = create_template("B", now=NOW)
    templates.save(a)
    templates.save(b)
    inst = create_instance(a, now=NOW)
    instances.save(inst)

    with pytest.raises(InvariantViolation):
        instances.save(replace(inst, template_id=b.id))


def test_instance_delete_decrements_and_clamps(
    templates: TemplateStore, instances: InstanceStore, task_rows: TaskStore
) -> None:
    tpl = create_template("Walk", now=NOW)
    templates.save(tpl)
    inst = create_instance(tpl, now=NOW)
    instances.save(inst)

    assert instances.delete(inst.id) is True
    assert instances.delete(inst.id) is False

    loaded = templates.get_by_id(tpl.id)
    assert loaded is not None
    assert loaded.live_instance_count == 0
    assert task_rows.get_by_id(inst.id) is None


def test_instance_delete_keeps_completion_count(
    templates: TemplateStore, instances: InstanceStore, stats: StatsStore
) -> None:
    tpl = create_template("Walk", now=NOW)
    templates.save(tpl)
    inst = create_instance(tpl, now=NOW)
    instances.save(inst)
    stats.save(TemplateStats(template_id=tpl.id, completion_count=1, last_updated_at=NOW))

    instances.delete(inst.id)

    kept = stats.get(tpl.id)
    assert kept is not None
    assert kept.completion_count == 1


def test_template_delete_cascades(
    templates: TemplateStore, instances: InstanceStore, stats: StatsStore, task_rows: TaskStore
) -> None:
    tpl = create_template("Laundry", now=NOW)
    other = create_template("Dishes", now=NOW)
    templates.save(tpl)
    templates.save(other)
    inst_ids = []
    for _ in range(3):
        inst = create_instance(tpl, now=NOW)
        instances.save(inst)
        inst_ids.append(inst.id)
    keep = create_instance(other, now=NOW)
    instances.save(keep)
    stats.save(TemplateStats(template_id=tpl.id, completion_count=2, last_updated_at=NOW))

    assert templates.delete(tpl.id) is True

    assert templates.get_by_id(tpl.id) is None
    assert instances.get_by_template(tpl.id) == []
    assert stats.get(tpl.id) is None
    assert all(task_rows.get_by_id(i) is None for i in inst_ids)

    # unrelated template untouched
    assert [i.id for i in instances.get_by_template(other.id)] == [keep.id]
    assert templates.delete(tpl.id) is False


def test_template_rename_updates_mirrored_titles(
    templates: TemplateStore, instances: InstanceStore, task_rows: TaskStore
) -> None:
    tpl = create_template("Yoga", now=NOW)
    templates.save(tpl)
    plain = create_instance(tpl, now=NOW)
    custom = create_instance(tpl, now=NOW, title="Hot yoga")
    instances.save(plain)
    instances.save(custom)

    templates.save(replace(tpl, title="Morning yoga"))

    plain_row = task_rows.get_by_id(plain.id)
    custom_row = task_rows.get_by_id(custom.id)
    assert plain_row is not None and plain_row.title == "Morning yoga"
    assert custom_row is not None and custom_row.title == "Hot yoga"


def test_task_store_lists_for_day(task_rows: TaskStore) -> None:
    task_rows.save(TaskRow(id="a", title="made today", completed=False, created_at=NOW))
    task_rows.save(
        TaskRow(
            id="b",
            title="due today",
            completed=False,
            created_at=datetime(2023, 12, 20),
            due_date=datetime(2024, 1, 3, 23, 59),
        )
    )
    task_rows.save(
        TaskRow(
            id="c",
            title="due tomorrow",
            completed=False,
            created_at=datetime(2023, 12, 20),
            due_date=datetime(2024, 1, 4, 0, 0),
        )
    )

    ids = {t.id for t in task_rows.list_for_day(NOW.date())}
    assert ids == {"a", "b"}
    assert [t.id for t in task_rows.get_all()][0] == "a"


@pytest.mark.parametrize(
    "stored",
    [
        "{not json",
        '{"interval": "weekly", "weekday": "x"}',
        '{"interval": "monthly", "day_of_month": [1]}',
        '{"interval": "daily", "every": 2}',
    ],
)
def test_corrupt_recurrence_reads_as_none(db: Database, templates: TemplateStore, stored: str) -> None:
    tpl = create_template("Broken", now=NOW, recurrence=Recurrence("daily"))
    templates.save(tpl)
    conn = db.connect()
    try:
        conn.execute("UPDATE templates SET autoRepeat = ? WHERE permanentId = ?", (stored, tpl.id))
        conn.commit()
    finally:
        conn.close()

    loaded = templates.get_by_id(tpl.id)
    assert loaded is not None
    assert loaded.recurrence is None
    assert [t.id for t in templates.get_all()] == [tpl.id]


def test_schema_migration_adds_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(
            "CREATE TABLE tasks (id TEXT PRIMARY KEY, title TEXT NOT NULL, "
            "completed INTEGER DEFAULT 0, created_at REAL NOT NULL)"
        )
        conn.execute(
            "CREATE TABLE template_instances (instanceId TEXT NOT NULL, templateId TEXT NOT NULL, "
            "createdAt REAL NOT NULL, PRIMARY KEY (instanceId, templateId))"
        )
        conn.execute("INSERT INTO tasks (id, title, completed, created_at) VALUES ('old', 'Old task', 0, 0)")
        conn.commit()
    finally:
        conn.close()

    db = Database(path)

    conn = db.connect()
    try:
        task_cols = {r["name"] for r in conn.execute("PRAGMA table_info(tasks)")}
        inst_cols = {r["name"] for r in conn.execute("PRAGMA table_info(template_instances)")}
    finally:
        conn.close()

    assert {"due_date", "kind"} <= task_cols
    assert {"dueDate", "completed", "title", "location"} <= inst_cols

    row = TaskStore(db).get_by_id("old")
    assert row is not None
    assert row.kind == "one_off"
    assert row.due_date is None
