# src/weekly_planner/tasks/retention.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from enum import StrEnum

from ..core.ports import Clock, Scope, Subscription, TaskListener, TaskRepo
from .task_models import Task

logger = logging.getLogger(__name__)


class RetentionPolicy(StrEnum):
    """
    What happens to instances dated before today when the collection is loaded.

    FILTER: hidden from the working view, rows stay in the store.
    PURGE:  hidden and deleted from the store.
    """

    FILTER = "filter"
    PURGE = "purge"

    @classmethod
    def from_config(cls, raw: str | None) -> RetentionPolicy:
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.FILTER


def filter_current(instances: Iterable[Task], today: date) -> list[Task]:
    """Keep instances dated today or later (plain calendar-date comparison)."""
    return [t for t in instances if t.date >= today]


def split_expired(instances: Iterable[Task], today: date) -> tuple[list[Task], list[Task]]:
    current: list[Task] = []
    expired: list[Task] = []
    for t in instances:
        (current if t.date >= today else expired).append(t)
    return current, expired


async def load_current(
    task_store: TaskRepo,
    scope: Scope,
    today: date,
    policy: RetentionPolicy = RetentionPolicy.FILTER,
) -> list[Task]:
    """
    Load the whole instance collection for `scope` and apply retention.

    With PURGE, expired rows are deleted; a failed delete is logged and the
    view is still filtered (the next load tries again).
    """
    instances = await task_store.list_all(scope)
    current, expired = split_expired(instances, today)

    if expired and policy == RetentionPolicy.PURGE:
        ids = [t.id for t in expired]
        try:
            removed = await task_store.delete_many(scope, ids)
            logger.info("Purged %d expired task(s) scope=%s before=%s", removed, scope, today)
        except Exception:
            logger.exception("Purging expired tasks failed scope=%s", scope)

    return current


def subscribe_current(
    task_store: TaskRepo,
    scope: Scope,
    clock: Clock,
    listener: TaskListener,
) -> Subscription:
    """
    Subscribe to the task collection with retention applied to every push.

    The store pushes everything it holds; listeners registered here only see
    instances dated today or later, with "today" read from the clock per push.
    """

    async def on_change(items: list[Task]) -> None:
        await listener(filter_current(items, clock.today()))

    return task_store.subscribe(scope, on_change)
