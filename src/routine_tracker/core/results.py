# src/routine_tracker/core/results.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import RecoverableSideEffectFailure, TaskError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OpResult(Generic[T]):
    """
    Outcome of a router operation.

    - success: value is set, error is None
    - failure: error is set (one of the TaskError kinds)
    - warnings: non-fatal side-effect failures (e.g. auto-repeat spawn)
    """

    value: T | None = None
    error: TaskError | None = None
    warnings: tuple[RecoverableSideEffectFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(
        cls,
        value: T | None = None,
        *,
        warnings: tuple[RecoverableSideEffectFailure, ...] = (),
    ) -> OpResult[T]:
        return cls(value=value, warnings=warnings)

    @classmethod
    def failure(cls, error: TaskError) -> OpResult[T]:
        return cls(error=error)
