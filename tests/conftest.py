# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from routine_tracker.storage.database import Database
from routine_tracker.storage.instance_store import InstanceStore
from routine_tracker.storage.stats_store import StatsStore
from routine_tracker.storage.task_store import TaskStore
from routine_tracker.storage.template_store import TemplateStore
from routine_tracker.tasks.task_router import TaskRouter

from .fakes import FixedClock

# Wednesday.
START = datetime(2024, 1, 3, 9, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """Settings stand-in for bootstrap; keeps tests off the real environment."""
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="routine-test",
        log_level="DEBUG",
        log_to_file=False,
        data_dir=data_dir,
        db_path=data_dir / "tasks.sqlite3",
        default_push_days=1,
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> Database:
    return Database(settings.db_path)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture()
def templates(db: Database) -> TemplateStore:
    return TemplateStore(db)


@pytest.fixture()
def instances(db: Database) -> InstanceStore:
    return InstanceStore(db)


@pytest.fixture()
def stats(db: Database) -> StatsStore:
    return StatsStore(db)


@pytest.fixture()
def task_rows(db: Database) -> TaskStore:
    return TaskStore(db)


@pytest.fixture()
def router(db: Database, clock: FixedClock) -> TaskRouter:
    """Router over real SQLite stores with a fixed clock."""
    return TaskRouter.from_database(db, clock=clock)
