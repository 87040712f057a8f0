# src/routine_tracker/recurring/actions.py

from __future__ import annotations

"""
Permanent task pipeline.

Business rules for templates and their instances, called by the TaskRouter
for kind == permanent. Everything here raises TaskError subclasses; the
router turns them into OpResult failures.

Rules:
- templates are never completed and never pushed forward
- an instance can be completed once; completion writes, in order,
  (1) the completed instance, (2) template stats, (3) the next instance
  when the template repeats; (3) is best-effort and never undoes (1)-(2)
- template id / template flag of a task are immutable
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.errors import (
    InvariantViolation,
    NotFoundError,
    RecoverableSideEffectFailure,
    ValidationError,
)
from ..core.ports import Clock, InstanceRepo, NextDueFn, TemplateRepo
from ..tasks.task_models import InstanceDraft, PermanentTask, TemplateDraft
from .factory import (
    create_instance,
    create_next_instance,
    create_template,
    validate_instance,
    validate_template,
)
from .models import Instance, Recurrence, Template
from .scheduler import shift_days
from .stats import StatsAggregator

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = frozenset({"id", "template_id", "is_template", "kind", "created_at"})
TEMPLATE_FIELDS = frozenset({"title", "location", "recurrence"})
INSTANCE_FIELDS = frozenset({"title", "due_date", "location"})


def check_update_fields(updates: Mapping[str, Any], allowed: frozenset[str]) -> None:
    for key in updates:
        if key in IDENTITY_FIELDS:
            raise InvariantViolation(f"field {key!r} cannot be changed")
        if key not in allowed:
            raise ValidationError(f"field {key!r} cannot be updated here (allowed: {sorted(allowed)})")


def template_to_task(template: Template) -> PermanentTask:
    return PermanentTask(
        id=template.id,
        title=template.title,
        created_at=template.created_at,
        template_id=template.id,
        is_template=True,
        location=template.location,
        recurrence=template.recurrence,
        instance_count=template.live_instance_count,
    )


def instance_to_task(instance: Instance, template: Template) -> PermanentTask:
    return PermanentTask(
        id=instance.id,
        title=instance.title or template.title,
        created_at=instance.created_at,
        template_id=template.id,
        is_template=False,
        completed=instance.completed,
        due_date=instance.due_date,
        location=instance.location or template.location,
        recurrence=template.recurrence,
        instance_count=template.live_instance_count,
    )


def _coerce_recurrence(value: Any) -> Recurrence | None:
    if value is None or isinstance(value, Recurrence):
        return value
    if isinstance(value, Mapping):
        try:
            return Recurrence.from_dict(dict(value))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"invalid recurrence: {exc}") from exc
    raise ValidationError(f"recurrence must be a Recurrence or a mapping, got {type(value).__name__}")


def _coerce_due_date(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    raise ValidationError(f"due_date must be a datetime, got {type(value).__name__}")


class PermanentTasks:
    def __init__(
        self,
        *,
        templates: TemplateRepo,
        instances: InstanceRepo,
        aggregator: StatsAggregator,
        clock: Clock,
        next_due: NextDueFn,
    ) -> None:
        self._templates = templates
        self._instances = instances
        self._aggregator = aggregator
        self._clock = clock
        self._next_due = next_due

    # ---- lookups ----

    def load_template(self, template_id: str) -> Template:
        template = self._templates.get_by_id(template_id)
        if template is None:
            raise NotFoundError("template", template_id)
        return template

    def load_instance(self, instance_id: str) -> tuple[Instance, Template]:
        instance = self._instances.get_by_id(instance_id)
        if instance is None:
            raise NotFoundError("instance", instance_id)
        return instance, self.load_template(instance.template_id)

    def instance_view(self, instance_id: str) -> PermanentTask:
        instance, template = self.load_instance(instance_id)
        return instance_to_task(instance, template)

    def instances_of(self, template_id: str) -> list[PermanentTask]:
        template = self._templates.get_by_id(template_id)
        if template is None:
            return []
        return [instance_to_task(i, template) for i in self._instances.get_by_template(template_id)]

    # ---- create ----

    def create(self, title: str, draft: TemplateDraft | InstanceDraft | None) -> PermanentTask:
        if isinstance(draft, InstanceDraft):
            return self._create_instance(title, draft)
        if draft is None or isinstance(draft, TemplateDraft):
            return self._create_template(title, draft or TemplateDraft())
        raise ValidationError(f"unexpected draft for a permanent task: {type(draft).__name__}")

    def _create_template(self, title: str, draft: TemplateDraft) -> PermanentTask:
        template = create_template(
            title,
            now=self._clock(),
            location=draft.location,
            recurrence=draft.recurrence,
        )
        self._templates.save(template)
        logger.info("Template created id=%s title=%r repeats=%s", template.id, template.title, template.repeats)
        return template_to_task(template)

    def _create_instance(self, title: str, draft: InstanceDraft) -> PermanentTask:
        if not draft.template_id:
            raise ValidationError("template_id is required to create an instance")
        template = self.load_template(draft.template_id)
        instance = create_instance(
            template,
            now=self._clock(),
            due_date=_coerce_due_date(draft.due_date),
            title=draft.title or title,
            location=draft.location,
        )
        self._instances.save(instance)
        logger.info("Instance created id=%s template=%s due=%s", instance.id, template.id, instance.due_date)
        return self.instance_view(instance.id)

    # ---- complete ----

    def complete(self, task: PermanentTask) -> tuple[PermanentTask, list[RecoverableSideEffectFailure]]:
        if task.is_template:
            raise InvariantViolation("cannot complete a template; create an instance first")

        instance, template = self.load_instance(task.id)
        if instance.completed:
            raise InvariantViolation(f"task {task.id!r} is already completed")

        completed_at = self._clock()

        done = replace(instance, completed=True)
        self._instances.save(done)
        self._aggregator.record_completion(template.id, completed_at)

        warnings: list[RecoverableSideEffectFailure] = []
        if template.repeats:
            reference = instance.due_date or completed_at
            try:
                self._spawn_next(template, reference)
            except Exception as exc:
                logger.warning(
                    "Failed to create next recurring instance template=%s after instance=%s",
                    template.id,
                    instance.id,
                    exc_info=True,
                )
                warnings.append(
                    RecoverableSideEffectFailure(
                        f"next instance of template {template.id!r} was not created: {exc}",
                        cause=exc,
                    )
                )

        return instance_to_task(done, self._templates.get_by_id(template.id) or template), warnings

    def _spawn_next(self, template: Template, reference: datetime) -> Instance:
        if template.recurrence is None:
            raise InvariantViolation(f"template {template.id!r} has no recurrence")
        due = self._next_due(template.recurrence, reference)
        nxt = create_next_instance(template, now=self._clock(), due_date=due)
        self._instances.save(nxt)
        logger.info("Next instance spawned id=%s template=%s due=%s", nxt.id, template.id, due)
        return nxt

    def uncomplete(self, task: PermanentTask) -> PermanentTask:
        """Undo a completion. Stats are left as they are."""
        if task.is_template:
            raise InvariantViolation("a template has no completion state")
        instance, template = self.load_instance(task.id)
        if instance.completed:
            instance = replace(instance, completed=False)
            self._instances.save(instance)
        return instance_to_task(instance, template)

    # ---- delete ----

    def delete(self, task: PermanentTask) -> None:
        if task.is_template:
            if not self._templates.delete(task.template_id):
                raise NotFoundError("template", task.template_id)
            return
        if not self._instances.delete(task.id):
            raise NotFoundError("instance", task.id)

    # ---- reassign / push forward ----

    def reassign(self, task: PermanentTask, updates: Mapping[str, Any]) -> PermanentTask:
        if task.is_template:
            check_update_fields(updates, TEMPLATE_FIELDS)
            template = self.load_template(task.template_id)
            changes: dict[str, Any] = {}
            if "title" in updates:
                changes["title"] = str(updates["title"] or "").strip()
            if "location" in updates:
                changes["location"] = str(updates["location"] or "").strip() or None
            if "recurrence" in updates:
                changes["recurrence"] = _coerce_recurrence(updates["recurrence"])
            updated = replace(template, **changes)
            validate_template(updated)
            self._templates.save(updated)
            return template_to_task(self.load_template(template.id))

        check_update_fields(updates, INSTANCE_FIELDS)
        instance, template = self.load_instance(task.id)
        changes = {}
        if "title" in updates:
            title = str(updates["title"] or "").strip()
            if not title:
                raise ValidationError("title cannot be empty")
            changes["title"] = title if title != template.title else None
        if "due_date" in updates:
            changes["due_date"] = _coerce_due_date(updates["due_date"])
        if "location" in updates:
            location = str(updates["location"] or "").strip() or None
            changes["location"] = location if location != template.location else None
        updated_instance = replace(instance, **changes)
        validate_instance(updated_instance)
        self._instances.save(updated_instance)
        return instance_to_task(updated_instance, template)

    def push_forward(self, task: PermanentTask, days: int) -> PermanentTask:
        if task.is_template:
            raise InvariantViolation("cannot push forward a template; only instances have due dates")
        instance, template = self.load_instance(task.id)
        base = instance.due_date or self._clock()
        moved = replace(instance, due_date=shift_days(base, days))
        self._instances.save(moved)
        return instance_to_task(moved, template)
