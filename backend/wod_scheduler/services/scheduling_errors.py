"""
Typed errors raised by the scheduling engine.

All of them are caller-fixable and carry enough context (offending day ids,
missing collection name) to correct the request. None are retried.
"""

from typing import Iterable, List, Optional


class SchedulingError(Exception):
    """Base exception for schedule generation and progression errors"""

    pass


class NotFoundError(SchedulingError):
    """Event, schedule or session does not exist"""

    pass


class SchedulingValidationError(SchedulingError):
    """Required input collection or mode-specific config is missing or invalid"""

    pass


class TimeConstraintViolation(SchedulingError):
    """One or more days exceed the configured hour budget"""

    def __init__(self, day_ids: Iterable[str], max_hours: Optional[float] = None):
        self.day_ids: List[str] = list(day_ids)
        self.max_hours = max_hours
        message = f"Time constraints violated for days: {', '.join(self.day_ids)}"
        if max_hours is not None:
            message += f" (max {max_hours:g}h per day)"
        super().__init__(message)


class InvalidStateError(SchedulingError):
    """Lifecycle transition not allowed in the schedule's current state"""

    pass


class ConcurrentModificationError(SchedulingError):
    """Schedule was saved by another writer since it was loaded"""

    pass
