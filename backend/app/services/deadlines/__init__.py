"""
Deadline scheduling, storage and calendar export.
"""
from .deadline_engine import DeadlineEngine, deadline_id, make_deadline
from .store import (
    DeadlineNotFoundError,
    DeadlineStore,
    InMemoryDeadlineStore,
    SqlDeadlineStore,
)
from .calendar import build_calendar, deadline_to_event

__all__ = [
    "DeadlineEngine",
    "deadline_id",
    "make_deadline",
    "DeadlineNotFoundError",
    "DeadlineStore",
    "InMemoryDeadlineStore",
    "SqlDeadlineStore",
    "build_calendar",
    "deadline_to_event",
]
