from __future__ import annotations

from typing import Optional


class LiftLogError(Exception):
    pass


class NotFound(LiftLogError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} {key!r} not found")
        self.kind = kind
        self.key = key


class InvalidDateKey(LiftLogError, ValueError):
    def __init__(self, value: object) -> None:
        super().__init__(f"expected a YYYY-MM-DD date, got {value!r}")
        self.value = value


class StoreWriteFailure(LiftLogError):
    """A secondary write (performance entry or fallback rebuild) failed.

    The authoritative log write is never rolled back because of it; the
    failure is reported to the caller as a warning.
    """

    def __init__(self, exercise_id: str, operation: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed for exercise {exercise_id!r}{detail}")
        self.exercise_id = exercise_id
        self.operation = operation
        self.cause = cause
