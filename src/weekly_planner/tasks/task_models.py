# src/weekly_planner/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

# Values written by the first (Portuguese) version of the app.
_LEGACY_PRIORITIES = {
    "baixa": "low",
    "media": "medium",
    "média": "medium",
    "alta": "high",
}


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        """Lenient read: unknown or missing values fall back to the lowest priority."""
        if not raw:
            return cls.LOW
        key = str(raw).strip().lower()
        key = _LEGACY_PRIORITIES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.LOW

    @classmethod
    def parse(cls, raw: str) -> Priority | None:
        """Strict read for user input. Returns None when the value is not recognised."""
        key = (raw or "").strip().lower()
        key = _LEGACY_PRIORITIES.get(key, key)
        aliases = {"l": "low", "m": "medium", "med": "medium", "h": "high", "hi": "high"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


@dataclass(slots=True)
class Task:
    """A dated to-do item; `origin_template_id` is set when a template produced it."""

    id: str
    title: str
    description: str
    priority: Priority
    done: bool
    date: date
    origin_template_id: str | None = None


@dataclass(slots=True, frozen=True)
class NewTask:
    """Creation request for a task instance (the store assigns the id)."""

    title: str
    description: str
    priority: Priority
    date: date
    done: bool = False
    origin_template_id: str | None = None


@dataclass(slots=True)
class RecurringTemplate:
    id: str
    title: str
    description: str
    priority: Priority
    weekday: int  # 0 = Sunday ... 6 = Saturday


@dataclass(slots=True, frozen=True)
class NewTemplate:
    title: str
    description: str
    priority: Priority
    weekday: int


# Fields a caller may change through update(); everything else is fixed at creation.
TASK_MUTABLE_FIELDS = frozenset({"title", "description", "priority", "done", "date"})
TEMPLATE_MUTABLE_FIELDS = frozenset({"title", "description", "priority", "weekday"})

# Fields copied from a template onto the instance it produced today.
PROPAGATED_FIELDS = ("title", "description", "priority")
