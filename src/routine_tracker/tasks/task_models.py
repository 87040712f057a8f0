# src/routine_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import ClassVar

from ..recurring.models import Recurrence


class TaskKind(StrEnum):
    """
    Task kinds the router dispatches on.

    Notes:
    - "preset" is reserved: every operation on it is rejected as unsupported.
    """

    ONE_OFF = "one_off"
    PERMANENT = "permanent"
    PRESET = "preset"


@dataclass(frozen=True, slots=True)
class OneOffTask:
    kind: ClassVar[TaskKind] = TaskKind.ONE_OFF

    id: str
    title: str
    created_at: datetime
    completed: bool = False
    due_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class PermanentTask:
    """A template (is_template=True) or an instance of one, as seen by callers."""

    kind: ClassVar[TaskKind] = TaskKind.PERMANENT

    id: str
    title: str
    created_at: datetime
    template_id: str
    is_template: bool
    completed: bool = False
    due_date: datetime | None = None
    location: str | None = None
    recurrence: Recurrence | None = None
    instance_count: int = 0


@dataclass(frozen=True, slots=True)
class PresetTask:
    kind: ClassVar[TaskKind] = TaskKind.PRESET

    id: str
    title: str
    created_at: datetime
    completed: bool = False
    due_date: datetime | None = None


Task = OneOffTask | PermanentTask | PresetTask


# ---- creation drafts (the "extra" argument of create_task) ----


@dataclass(frozen=True, slots=True)
class OneOffDraft:
    due_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class TemplateDraft:
    location: str | None = None
    recurrence: Recurrence | None = None


@dataclass(frozen=True, slots=True)
class InstanceDraft:
    template_id: str
    due_date: datetime | None = None
    title: str | None = None
    location: str | None = None


Draft = OneOffDraft | TemplateDraft | InstanceDraft
