# src/routine_tracker/recurring/scheduler.py

from __future__ import annotations

"""
Recurrence scheduler.

Pure date arithmetic: given a Recurrence and a reference datetime, compute
when the next instance is due. No I/O, no clock reads.

Rules:
- daily:   reference + 1 day (time of day kept)
- weekly:  reference + 7 days; with a weekday anchor, the first anchor
           weekday strictly after the reference (so 1..7 days ahead)
- monthly: reference + 1 calendar month; with a day-of-month anchor the day
           is set to the anchor, clamped to the last day of the target month
           (anchor 31 in February -> Feb 28/29, never March)
"""

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from ..core.errors import UnsupportedRecurrence
from .models import Recurrence, RecurrenceInterval


def _interval_of(recurrence: Recurrence) -> RecurrenceInterval:
    try:
        return RecurrenceInterval(recurrence.interval)
    except ValueError:
        raise UnsupportedRecurrence(recurrence.interval) from None


def next_due_date(recurrence: Recurrence, reference: datetime) -> datetime:
    interval = _interval_of(recurrence)

    if interval is RecurrenceInterval.DAILY:
        return reference + timedelta(days=1)

    if interval is RecurrenceInterval.WEEKLY:
        if recurrence.weekday is None:
            return reference + timedelta(days=7)
        ahead = (recurrence.weekday - reference.isoweekday()) % 7
        return reference + timedelta(days=ahead or 7)

    if interval is RecurrenceInterval.MONTHLY:
        if recurrence.day_of_month is None:
            return reference + relativedelta(months=1)
        # relativedelta's absolute "day" clamps to the month length.
        return reference + relativedelta(months=1, day=recurrence.day_of_month)

    raise UnsupportedRecurrence(recurrence.interval)


def shift_days(when: datetime, days: int) -> datetime:
    """Move a due date by whole calendar days (negative values move it back)."""
    return when + timedelta(days=int(days))
