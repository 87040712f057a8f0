# tests/test_logging_setup.py

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

import pytest

from routine_tracker.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@contextlib.contextmanager
def _isolated_root():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    try:
        yield root
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("routine_tracker.tasks.task_router", logging.DEBUG, True),
        ("routine_tracker.recurring.actions", logging.INFO, True),
        ("routine_tracker.storage.database", logging.DEBUG, False),
        ("routine_tracker.storage.template_store", logging.INFO, True),
        ("routine_tracker.storage.template_store", logging.ERROR, True),
        ("routine_tracker", logging.DEBUG, False),
        ("asyncio", logging.INFO, False),
        ("asyncio", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_console_only(tmp_path: Path) -> None:
    with _isolated_root() as root:
        setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING, log_to_file=False)
        handlers = list(root.handlers)

    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert handlers[0].level == logging.WARNING
    assert any(isinstance(f, _ConsoleNoiseFilter) for f in handlers[0].filters)
    assert not (tmp_path / "logs").exists()


def test_setup_logging_with_file_is_idempotent(tmp_path: Path) -> None:
    with _isolated_root() as root:
        setup_logging(log_dir=tmp_path, log_to_file=True)
        setup_logging(log_dir=tmp_path, log_to_file=True)

        handlers = list(root.handlers)
        file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
        assert len(handlers) == 2
        assert len(file_handlers) == 1

        # storage debug chatter is kept out of the console but lands in the file
        logging.getLogger("routine_tracker.storage.database").debug("schema checked")
        file_handlers[0].flush()

    assert "schema checked" in (tmp_path / "routine.log").read_text(encoding="utf-8")
