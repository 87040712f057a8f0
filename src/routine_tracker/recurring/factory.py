# src/routine_tracker/recurring/factory.py

from __future__ import annotations

import uuid
from datetime import datetime

from ..core.errors import InvariantViolation, ValidationError
from .models import Instance, Recurrence, RecurrenceInterval, Template


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def validate_recurrence(recurrence: Recurrence) -> None:
    try:
        interval = RecurrenceInterval(recurrence.interval)
    except ValueError:
        raise ValidationError(f"unknown recurrence interval {recurrence.interval!r}") from None

    if recurrence.weekday is not None:
        if interval is not RecurrenceInterval.WEEKLY:
            raise ValidationError("weekday anchor is only valid for weekly recurrence")
        if not 1 <= recurrence.weekday <= 7:
            raise ValidationError(f"weekday must be 1..7 (ISO), got {recurrence.weekday}")

    if recurrence.day_of_month is not None:
        if interval is not RecurrenceInterval.MONTHLY:
            raise ValidationError("day-of-month anchor is only valid for monthly recurrence")
        if not 1 <= recurrence.day_of_month <= 31:
            raise ValidationError(f"day_of_month must be 1..31, got {recurrence.day_of_month}")


def validate_template(template: Template) -> None:
    if not template.id:
        raise ValidationError("template id is required")
    if not template.title or not template.title.strip():
        raise ValidationError("template title is required")
    if template.live_instance_count < 0:
        raise ValidationError("live instance count cannot be negative")
    if template.recurrence is not None:
        validate_recurrence(template.recurrence)


def validate_instance(instance: Instance) -> None:
    if not instance.id:
        raise ValidationError("instance id is required")
    if not instance.template_id:
        raise ValidationError("instance requires a template id")
    if instance.id == instance.template_id:
        raise InvariantViolation("an instance cannot be its own template")


def create_template(
    title: str,
    *,
    now: datetime,
    location: str | None = None,
    recurrence: Recurrence | None = None,
) -> Template:
    template = Template(
        id=new_id("tpl"),
        title=(title or "").strip(),
        created_at=now,
        location=_clean_text(location),
        recurrence=recurrence,
    )
    validate_template(template)
    return template


def create_instance(
    template: Template,
    *,
    now: datetime,
    due_date: datetime | None = None,
    title: str | None = None,
    location: str | None = None,
) -> Instance:
    """
    Build an instance of `template`.

    title/location are stored only when they differ from the template's,
    so later template edits still show through.
    """
    title = _clean_text(title)
    location = _clean_text(location)
    instance = Instance(
        id=new_id("inst"),
        template_id=template.id,
        created_at=now,
        due_date=due_date,
        title=title if title != template.title else None,
        location=location if location != template.location else None,
    )
    validate_instance(instance)
    return instance


def create_next_instance(template: Template, *, now: datetime, due_date: datetime) -> Instance:
    return create_instance(template, now=now, due_date=due_date)
