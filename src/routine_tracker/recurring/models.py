# src/routine_tracker/recurring/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_RECURRENCE_KEYS = frozenset(
    {"interval", "frequency", "weekday", "dayOfWeek", "day_of_month", "dayOfMonth", "enabled"}
)


class RecurrenceInterval(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True, slots=True)
class Recurrence:
    """
    Auto-repeat configuration of a template.

    Notes:
    - interval is kept as the raw string so that an unknown value read from
      the database reaches the scheduler and fails loudly there.
    - weekday is ISO (1=Monday .. 7=Sunday).
    """

    interval: str
    weekday: int | None = None
    day_of_month: int | None = None
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"interval": self.interval, "enabled": self.enabled}
        if self.weekday is not None:
            out["weekday"] = self.weekday
        if self.day_of_month is not None:
            out["day_of_month"] = self.day_of_month
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Recurrence:
        """
        Build from the stored dict or from a create-template form payload.

        Form payloads use "frequency" for the interval and "dayOfWeek" /
        "dayOfMonth" for anchors. dayOfWeek counts 0=Sunday..6=Saturday and
        is mapped to ISO here (0 -> 7).

        Raises ValueError/TypeError on unknown keys or non-integer anchors.
        """
        unknown = set(raw) - _RECURRENCE_KEYS
        if unknown:
            raise ValueError(f"unknown recurrence keys: {sorted(unknown)}")

        interval = raw.get("interval", raw.get("frequency"))
        weekday = raw.get("weekday")
        if weekday is None and raw.get("dayOfWeek") is not None:
            weekday = int(raw["dayOfWeek"]) or 7
        day_of_month = raw.get("day_of_month")
        if day_of_month is None:
            day_of_month = raw.get("dayOfMonth")
        return cls(
            interval=str(interval or "").strip().lower(),
            weekday=int(weekday) if weekday is not None else None,
            day_of_month=int(day_of_month) if day_of_month is not None else None,
            enabled=bool(raw.get("enabled", True)),
        )


@dataclass(frozen=True, slots=True)
class Template:
    id: str
    title: str
    created_at: datetime
    location: str | None = None
    recurrence: Recurrence | None = None
    live_instance_count: int = 0

    @property
    def repeats(self) -> bool:
        return self.recurrence is not None and self.recurrence.enabled


@dataclass(frozen=True, slots=True)
class Instance:
    id: str
    template_id: str
    created_at: datetime
    due_date: datetime | None = None
    completed: bool = False

    # Per-instance overrides; None means "inherit from the template".
    title: str | None = None
    location: str | None = None


@dataclass(frozen=True, slots=True)
class TemplateStats:
    template_id: str
    completion_count: int = 0
    completion_rate: float = 0.0
    current_streak: int = 0
    max_streak: int = 0
    # Completions per ISO weekday, Monday first.
    by_weekday: tuple[int, ...] = field(default=(0, 0, 0, 0, 0, 0, 0))
    last_updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class StatsSummary:
    template_id: str
    completion_count: int
    completion_rate: float
    most_likely_weekday: int | None
    least_likely_weekday: int | None

    @property
    def preferred_day(self) -> str:
        if self.most_likely_weekday is None:
            return ""
        return WEEKDAY_NAMES[self.most_likely_weekday - 1]
