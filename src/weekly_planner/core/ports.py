# src/weekly_planner/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends swappable (SQLite, a remote document database, ...)
and makes testing easier.

Every store call takes an explicit Scope: data is partitioned per account and
the scope is never read from ambient state.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import NewTask, NewTemplate, RecurringTemplate, Task


@dataclass(frozen=True, slots=True)
class Scope:
    """Account/session context threaded into every store call."""

    account_id: str

    def __str__(self) -> str:
        return self.account_id


TaskListener = Callable[[list[Any]], Awaitable[None]]  # receives list[Task]
TemplateListener = Callable[[list[Any]], Awaitable[None]]  # receives list[RecurringTemplate]


class Subscription(Protocol):
    """Handle for a live subscription; close() stops further pushes."""

    def close(self) -> None: ...


class Clock(Protocol):
    def today(self) -> date: ...
    def weekday_of(self, day: date) -> int: ...


class TaskRepo(Protocol):
    async def list_all(self, scope: Scope) -> list[Task]: ...
    async def list_for_date(self, scope: Scope, day: date) -> list[Task]: ...
    async def list_for_origin(self, scope: Scope, template_id: str) -> list[Task]: ...
    async def get(self, scope: Scope, task_id: str) -> Task | None: ...

    # Live updates: listener receives the full stored collection after every change,
    # expired rows included. Views subscribe through retention.subscribe_current.
    def subscribe(self, scope: Scope, listener: TaskListener) -> Subscription: ...

    async def create(self, scope: Scope, new: NewTask) -> str: ...
    async def update(self, scope: Scope, task_id: str, **fields: Any) -> bool: ...
    async def delete(self, scope: Scope, task_id: str) -> bool: ...
    async def delete_many(self, scope: Scope, task_ids: list[str]) -> int: ...


class TemplateRepo(Protocol):
    async def list_all(self, scope: Scope) -> list[RecurringTemplate]: ...
    async def get(self, scope: Scope, template_id: str) -> RecurringTemplate | None: ...

    def subscribe(self, scope: Scope, listener: TemplateListener) -> Subscription: ...

    async def create(self, scope: Scope, new: NewTemplate) -> str: ...
    async def update(self, scope: Scope, template_id: str, **fields: Any) -> bool: ...
    async def delete(self, scope: Scope, template_id: str) -> bool: ...
