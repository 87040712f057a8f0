# src/routine_tracker/tasks/task_router.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import date, datetime
from typing import Any, TypeVar

from ..core.errors import TaskError, UnsupportedOperation, ValidationError
from ..core.ports import Clock, InstanceRepo, NextDueFn, StatsRepo, TaskRowRepo, TemplateRepo
from ..core.results import OpResult
from ..recurring.actions import PermanentTasks, check_update_fields, template_to_task
from ..recurring.factory import new_id
from ..recurring.models import StatsSummary, TemplateStats
from ..recurring.scheduler import next_due_date, shift_days
from ..recurring.stats import StatsAggregator, summarize
from ..storage.database import Database
from ..storage.instance_store import InstanceStore
from ..storage.stats_store import StatsStore
from ..storage.task_store import TaskRow, TaskStore
from ..storage.template_store import TemplateStore
from .task_models import (
    Draft,
    InstanceDraft,
    OneOffDraft,
    OneOffTask,
    PermanentTask,
    PresetTask,
    Task,
    TaskKind,
    TemplateDraft,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONE_OFF_FIELDS = frozenset({"title", "due_date"})


def _one_off_to_row(task: OneOffTask) -> TaskRow:
    return TaskRow(
        id=task.id,
        title=task.title,
        completed=task.completed,
        created_at=task.created_at,
        due_date=task.due_date,
        kind=TaskKind.ONE_OFF.value,
    )


class TaskRouter:
    """
    Single entry point for task operations.

    Dispatches on the task variant:
    - OneOffTask   -> handled inline against the `tasks` table
    - PermanentTask -> template/instance pipeline (recurring.actions)
    - PresetTask   -> always UnsupportedOperation

    Every operation returns an OpResult. Expected failures (TaskError) become
    OpResult.error; anything else is a bug and propagates.
    """

    def __init__(
        self,
        *,
        tasks: TaskRowRepo,
        templates: TemplateRepo,
        instances: InstanceRepo,
        stats: StatsRepo,
        clock: Clock = datetime.now,
        next_due: NextDueFn = next_due_date,
        default_push_days: int = 1,
    ) -> None:
        self._tasks = tasks
        self._templates = templates
        self._instances = instances
        self._stats = stats
        self._clock = clock
        self._default_push_days = int(default_push_days)
        self._permanent = PermanentTasks(
            templates=templates,
            instances=instances,
            aggregator=StatsAggregator(stats, templates),
            clock=clock,
            next_due=next_due,
        )

    @classmethod
    def from_database(cls, db: Database, **kwargs: Any) -> TaskRouter:
        return cls(
            tasks=TaskStore(db),
            templates=TemplateStore(db),
            instances=InstanceStore(db),
            stats=StatsStore(db),
            **kwargs,
        )

    # ---- low-level helpers ----

    @staticmethod
    def _guard(op: str, fn: Callable[[], OpResult[T]]) -> OpResult[T]:
        try:
            return fn()
        except TaskError as exc:
            logger.info("%s rejected: %s: %s", op, type(exc).__name__, exc)
            return OpResult.failure(exc)

    @staticmethod
    def _unsupported(op: str, task: Task) -> UnsupportedOperation:
        return UnsupportedOperation(f"{op} is not implemented for {task.kind.value} tasks")

    @staticmethod
    def _check_title(title: str) -> str:
        title = (title or "").strip()
        if not title:
            raise ValidationError("title is required")
        return title

    # ---- create ----

    async def create_task(
        self,
        title: str,
        kind: TaskKind | str = TaskKind.ONE_OFF,
        extra: Draft | None = None,
    ) -> OpResult[Task]:
        return self._guard("create_task", lambda: OpResult.success(self._create(title, kind, extra)))

    def _create(self, title: str, kind: TaskKind | str, extra: Draft | None) -> Task:
        try:
            kind = TaskKind(kind)
        except ValueError:
            raise ValidationError(f"unknown task kind {kind!r}") from None

        if kind is TaskKind.PERMANENT:
            if extra is not None and not isinstance(extra, (TemplateDraft, InstanceDraft)):
                raise ValidationError(f"unexpected draft for a permanent task: {type(extra).__name__}")
            return self._permanent.create(title, extra)

        if kind is TaskKind.PRESET:
            raise UnsupportedOperation("creating preset tasks is not implemented")

        if extra is not None and not isinstance(extra, OneOffDraft):
            raise ValidationError(f"unexpected draft for a one-off task: {type(extra).__name__}")
        task = OneOffTask(
            id=new_id("task"),
            title=self._check_title(title),
            created_at=self._clock(),
            due_date=extra.due_date if extra is not None else None,
        )
        self._tasks.save(_one_off_to_row(task))
        logger.debug("One-off task created id=%s", task.id)
        return task

    # ---- complete / uncomplete ----

    async def complete_task(self, task: Task) -> OpResult[Task]:
        return self._guard("complete_task", lambda: self._complete(task))

    def _complete(self, task: Task) -> OpResult[Task]:
        if isinstance(task, PermanentTask):
            done, warnings = self._permanent.complete(task)
            return OpResult.success(done, warnings=tuple(warnings))
        if isinstance(task, OneOffTask):
            done_one_off = replace(task, completed=True)
            self._tasks.save(_one_off_to_row(done_one_off))
            return OpResult.success(done_one_off)
        if isinstance(task, PresetTask):
            raise self._unsupported("complete", task)
        raise TypeError(f"not a task: {task!r}")

    async def uncomplete_task(self, task: Task) -> OpResult[Task]:
        return self._guard("uncomplete_task", lambda: OpResult.success(self._uncomplete(task)))

    def _uncomplete(self, task: Task) -> Task:
        if isinstance(task, PermanentTask):
            return self._permanent.uncomplete(task)
        if isinstance(task, OneOffTask):
            undone = replace(task, completed=False)
            self._tasks.save(_one_off_to_row(undone))
            return undone
        if isinstance(task, PresetTask):
            raise self._unsupported("uncomplete", task)
        raise TypeError(f"not a task: {task!r}")

    # ---- delete ----

    async def delete_task(self, task: Task) -> OpResult[None]:
        return self._guard("delete_task", lambda: self._delete(task))

    def _delete(self, task: Task) -> OpResult[None]:
        if isinstance(task, PermanentTask):
            self._permanent.delete(task)
        elif isinstance(task, OneOffTask):
            self._tasks.delete(task.id)
        elif isinstance(task, PresetTask):
            raise self._unsupported("delete", task)
        else:
            raise TypeError(f"not a task: {task!r}")
        return OpResult.success(None)

    # ---- reassign ----

    async def reassign_task(self, task: Task, updates: Mapping[str, Any]) -> OpResult[Task]:
        return self._guard("reassign_task", lambda: OpResult.success(self._reassign(task, updates)))

    def _reassign(self, task: Task, updates: Mapping[str, Any]) -> Task:
        if isinstance(task, PermanentTask):
            return self._permanent.reassign(task, updates)
        if isinstance(task, OneOffTask):
            check_update_fields(updates, ONE_OFF_FIELDS)
            changes: dict[str, Any] = {}
            if "title" in updates:
                changes["title"] = self._check_title(updates["title"])
            if "due_date" in updates:
                due = updates["due_date"]
                if due is not None and not isinstance(due, datetime):
                    raise ValidationError(f"due_date must be a datetime, got {type(due).__name__}")
                changes["due_date"] = due
            updated = replace(task, **changes)
            self._tasks.save(_one_off_to_row(updated))
            return updated
        if isinstance(task, PresetTask):
            raise self._unsupported("reassign", task)
        raise TypeError(f"not a task: {task!r}")

    # ---- push forward ----

    async def push_task_forward(self, task: Task, days: int | None = None) -> OpResult[Task]:
        return self._guard("push_task_forward", lambda: OpResult.success(self._push(task, days)))

    def _push(self, task: Task, days: int | None) -> Task:
        if days is None:
            days = self._default_push_days
        if isinstance(days, bool) or not isinstance(days, int):
            raise ValidationError(f"days must be an integer, got {days!r}")

        if isinstance(task, PermanentTask):
            return self._permanent.push_forward(task, days)
        if isinstance(task, OneOffTask):
            base = task.due_date or self._clock()
            moved = replace(task, due_date=shift_days(base, days))
            self._tasks.save(_one_off_to_row(moved))
            return moved
        if isinstance(task, PresetTask):
            raise self._unsupported("push forward", task)
        raise TypeError(f"not a task: {task!r}")

    # ---- queries ----

    async def get_all_templates(self) -> list[PermanentTask]:
        return [template_to_task(t) for t in self._templates.get_all()]

    async def get_template_by_id(self, template_id: str) -> PermanentTask | None:
        template = self._templates.get_by_id(template_id)
        return template_to_task(template) if template is not None else None

    async def get_template_with_stats(self, template_id: str) -> tuple[PermanentTask, TemplateStats] | None:
        """Template plus its stats; zeroed stats when nothing was completed yet."""
        template = self._templates.get_by_id(template_id)
        if template is None:
            return None
        stats = self._stats.get(template_id) or TemplateStats(template_id=template_id)
        return template_to_task(template), stats

    async def get_instances(self, template_id: str) -> list[PermanentTask]:
        return self._permanent.instances_of(template_id)

    async def get_stats(self, template_id: str) -> TemplateStats | None:
        return self._stats.get(template_id)

    async def get_stats_summary(self, template_id: str) -> StatsSummary | None:
        stats = self._stats.get(template_id)
        return summarize(stats) if stats is not None else None

    async def get_all_tasks(self) -> list[Task]:
        return self._hydrate(self._tasks.get_all())

    async def get_tasks_for_day(self, day: date | None = None) -> list[Task]:
        """The "today" list: tasks created or due on `day` (default: today)."""
        if day is None:
            day = self._clock().date()
        return self._hydrate(self._tasks.list_for_day(day))

    def _hydrate(self, rows: list[TaskRow]) -> list[Task]:
        out: list[Task] = []
        for row in rows:
            try:
                kind = TaskKind(row.kind)
            except ValueError:
                logger.warning("Skipping task row id=%s with unknown kind=%r", row.id, row.kind)
                continue

            if kind is TaskKind.PERMANENT:
                try:
                    out.append(self._permanent.instance_view(row.id))
                except TaskError:
                    logger.warning("Skipping orphaned permanent task row id=%s", row.id)
                continue

            cls = PresetTask if kind is TaskKind.PRESET else OneOffTask
            out.append(
                cls(
                    id=row.id,
                    title=row.title,
                    created_at=row.created_at,
                    completed=row.completed,
                    due_date=row.due_date,
                )
            )
        return out
