# tests/fakes.py

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from datetime import date
from typing import Any

from weekly_planner.core.errors import DuplicateInstanceError, StoreError
from weekly_planner.core.ports import Scope, TaskListener, TemplateListener
from weekly_planner.tasks.task_models import (
    NewTask,
    NewTemplate,
    Priority,
    RecurringTemplate,
    Task,
)


def make_task(
    task_id: str,
    day: date,
    *,
    origin: str | None = None,
    title: str = "task",
    done: bool = False,
    priority: Priority = Priority.MEDIUM,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        description="",
        priority=priority,
        done=done,
        date=day,
        origin_template_id=origin,
    )


def make_template(
    template_id: str,
    weekday: int,
    *,
    title: str = "recurring",
    description: str = "",
    priority: Priority = Priority.MEDIUM,
) -> RecurringTemplate:
    return RecurringTemplate(
        id=template_id,
        title=title,
        description=description,
        priority=priority,
        weekday=weekday,
    )


class FakeSubscription:
    def __init__(self, listeners: list[Any], listener: Any) -> None:
        self._listeners = listeners
        self._listener = listener
        self.closed = False

    def close(self) -> None:
        if not self.closed and self._listener in self._listeners:
            self._listeners.remove(self._listener)
        self.closed = True


class InMemoryTaskRepo:
    """
    In-memory TaskRepo used for sync-loop unit tests.

    - `enforce_unique=False` drops the (template, date) guard so tests can show
      that the loop alone never writes a duplicate
    - `fail_origins` makes create() fail for the given template ids
    - `create_gate`, when set to an unset Event, holds every create() until it is set;
      `create_started` fires once a create() is waiting on it
    - every write yields to the event loop, like a real async backend
    """

    def __init__(self, *, enforce_unique: bool = True) -> None:
        self.enforce_unique = enforce_unique
        self.fail_origins: set[str] = set()
        self.rows: dict[str, tuple[Scope, Task]] = {}
        self.listeners: dict[Scope, list[TaskListener]] = {}
        self.create_calls = 0
        self.create_gate: asyncio.Event | None = None
        self.create_started = asyncio.Event()
        self._ids = itertools.count(1)

    def seed(self, scope: Scope, *tasks: Task) -> None:
        for t in tasks:
            self.rows[t.id] = (scope, t)

    def _scoped(self, scope: Scope) -> list[Task]:
        return [replace(t) for s, t in self.rows.values() if s == scope]

    async def _notify(self, scope: Scope) -> None:
        items = self._scoped(scope)
        for listener in list(self.listeners.get(scope, [])):
            await listener(items)

    async def list_all(self, scope: Scope) -> list[Task]:
        return self._scoped(scope)

    async def list_for_date(self, scope: Scope, day: date) -> list[Task]:
        return [t for t in self._scoped(scope) if t.date == day]

    async def list_for_origin(self, scope: Scope, template_id: str) -> list[Task]:
        return [t for t in self._scoped(scope) if t.origin_template_id == template_id]

    async def get(self, scope: Scope, task_id: str) -> Task | None:
        row = self.rows.get(task_id)
        return replace(row[1]) if row and row[0] == scope else None

    def subscribe(self, scope: Scope, listener: TaskListener) -> FakeSubscription:
        items = self.listeners.setdefault(scope, [])
        items.append(listener)
        return FakeSubscription(items, listener)

    async def create(self, scope: Scope, new: NewTask) -> str:
        self.create_calls += 1
        self.create_started.set()
        if self.create_gate is not None:
            await self.create_gate.wait()
        await asyncio.sleep(0)
        if new.origin_template_id in self.fail_origins:
            raise StoreError("backend unavailable")
        if self.enforce_unique and new.origin_template_id:
            for s, t in self.rows.values():
                if s == scope and t.origin_template_id == new.origin_template_id and t.date == new.date:
                    raise DuplicateInstanceError(new.origin_template_id, new.date.isoformat())
        task_id = f"t{next(self._ids)}"
        self.rows[task_id] = (
            scope,
            Task(
                id=task_id,
                title=new.title,
                description=new.description,
                priority=new.priority,
                done=new.done,
                date=new.date,
                origin_template_id=new.origin_template_id,
            ),
        )
        await self._notify(scope)
        return task_id

    async def update(self, scope: Scope, task_id: str, **fields: Any) -> bool:
        await asyncio.sleep(0)
        row = self.rows.get(task_id)
        if row is None or row[0] != scope:
            return False
        self.rows[task_id] = (scope, replace(row[1], **fields))
        await self._notify(scope)
        return True

    async def delete(self, scope: Scope, task_id: str) -> bool:
        row = self.rows.get(task_id)
        if row is None or row[0] != scope:
            return False
        del self.rows[task_id]
        await self._notify(scope)
        return True

    async def delete_many(self, scope: Scope, task_ids: list[str]) -> int:
        removed = 0
        for task_id in task_ids:
            row = self.rows.get(task_id)
            if row is not None and row[0] == scope:
                del self.rows[task_id]
                removed += 1
        if removed:
            await self._notify(scope)
        return removed

    def tasks(self, scope: Scope) -> list[Task]:
        return self._scoped(scope)


class InMemoryTemplateRepo:
    def __init__(self) -> None:
        self.rows: dict[str, tuple[Scope, RecurringTemplate]] = {}
        self.listeners: dict[Scope, list[TemplateListener]] = {}
        self._ids = itertools.count(1)

    def seed(self, scope: Scope, *templates: RecurringTemplate) -> None:
        for t in templates:
            self.rows[t.id] = (scope, t)

    def _scoped(self, scope: Scope) -> list[RecurringTemplate]:
        return [replace(t) for s, t in self.rows.values() if s == scope]

    async def _notify(self, scope: Scope) -> None:
        items = self._scoped(scope)
        for listener in list(self.listeners.get(scope, [])):
            await listener(items)

    async def list_all(self, scope: Scope) -> list[RecurringTemplate]:
        return self._scoped(scope)

    async def get(self, scope: Scope, template_id: str) -> RecurringTemplate | None:
        row = self.rows.get(template_id)
        return replace(row[1]) if row and row[0] == scope else None

    def subscribe(self, scope: Scope, listener: TemplateListener) -> FakeSubscription:
        items = self.listeners.setdefault(scope, [])
        items.append(listener)
        return FakeSubscription(items, listener)

    async def create(self, scope: Scope, new: NewTemplate) -> str:
        template_id = f"r{next(self._ids)}"
        self.rows[template_id] = (
            scope,
            RecurringTemplate(
                id=template_id,
                title=new.title,
                description=new.description,
                priority=new.priority,
                weekday=new.weekday,
            ),
        )
        await self._notify(scope)
        return template_id

    async def update(self, scope: Scope, template_id: str, **fields: Any) -> bool:
        row = self.rows.get(template_id)
        if row is None or row[0] != scope:
            return False
        self.rows[template_id] = (scope, replace(row[1], **fields))
        await self._notify(scope)
        return True

    async def delete(self, scope: Scope, template_id: str) -> bool:
        row = self.rows.get(template_id)
        if row is None or row[0] != scope:
            return False
        del self.rows[template_id]
        await self._notify(scope)
        return True
