# src/routine_tracker/core/errors.py

"""
Error taxonomy for task operations.

Everything here derives from TaskError, so the router can tell expected
business-rule failures apart from real bugs (sqlite errors, TypeErrors, ...),
which are never caught and propagate unchanged.
"""

from __future__ import annotations


class TaskError(Exception):
    """Base class for expected, caller-facing task failures."""


class ValidationError(TaskError):
    """A required field is missing or malformed."""


class NotFoundError(TaskError):
    """A referenced template / instance / task id does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id!r} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvariantViolation(TaskError):
    """The operation would break a domain rule (e.g. completing a template)."""


class UnsupportedOperation(TaskError):
    """The operation exists but is not implemented for this task kind."""


class UnsupportedRecurrence(TaskError):
    """The recurrence interval is not one the scheduler knows how to advance."""

    def __init__(self, interval: object) -> None:
        super().__init__(f"unsupported recurrence interval: {interval!r}")
        self.interval = interval


class RecoverableSideEffectFailure(TaskError):
    """
    A follow-up step failed after the main operation already succeeded.

    Never raised to the caller: it is attached to OpResult.warnings.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
