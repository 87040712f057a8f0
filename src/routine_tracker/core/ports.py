# src/routine_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the router and the recurring pipeline.

They depend on these Protocols rather than on the SQLite stores, so tests
can swap in in-memory or failing doubles.
"""

from datetime import date, datetime
from typing import Callable, Protocol

from ..recurring.models import Instance, Recurrence, Template, TemplateStats
from ..storage.task_store import TaskRow

Clock = Callable[[], datetime]
NextDueFn = Callable[[Recurrence, datetime], datetime]


class TaskRowRepo(Protocol):
    def save(self, task: TaskRow) -> None: ...
    def get_by_id(self, task_id: str) -> TaskRow | None: ...
    def get_all(self) -> list[TaskRow]: ...
    def list_for_day(self, day: date) -> list[TaskRow]: ...
    def delete(self, task_id: str) -> bool: ...


class TemplateRepo(Protocol):
    def save(self, template: Template) -> None: ...
    def get_by_id(self, template_id: str) -> Template | None: ...
    def get_all(self) -> list[Template]: ...
    def delete(self, template_id: str) -> bool: ...


class InstanceRepo(Protocol):
    def save(self, instance: Instance) -> None: ...
    def get_by_id(self, instance_id: str) -> Instance | None: ...
    def get_all(self) -> list[Instance]: ...
    def get_by_template(self, template_id: str) -> list[Instance]: ...
    def delete(self, instance_id: str) -> bool: ...


class StatsRepo(Protocol):
    def save(self, stats: TemplateStats) -> None: ...
    def get(self, template_id: str) -> TemplateStats | None: ...
