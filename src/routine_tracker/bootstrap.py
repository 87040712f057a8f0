# src/routine_tracker/bootstrap.py

"""
Composition root.

- loads settings once (or takes injected ones),
- configures logging from settings,
- ensures the local data directory exists,
- wires the SQLite stores into a TaskRouter.
"""

from __future__ import annotations

import logging

from .config import get_settings
from .logging_setup import setup_logging
from .storage.database import Database
from .tasks.task_router import TaskRouter

logger = logging.getLogger(__name__)


def configure_logging(settings=None) -> None:
    if settings is None:
        settings = get_settings()
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    setup_logging(
        log_dir=getattr(settings, "data_dir", ".local/routine"),
        console_level=getattr(logging, level_name, logging.INFO),
        log_to_file=bool(getattr(settings, "log_to_file", True)),
    )


def create_router(*, settings=None, **router_kwargs) -> TaskRouter:
    """
    Build a TaskRouter backed by the SQLite file from settings.

    Keeping settings injectable keeps tests off the real environment.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    db = Database(settings.db_path)

    router_kwargs.setdefault("default_push_days", getattr(settings, "default_push_days", 1))
    router = TaskRouter.from_database(db, **router_kwargs)
    logger.info("TaskRouter ready app=%s db=%s", getattr(settings, "app_name", "routine"), db.path)
    return router
