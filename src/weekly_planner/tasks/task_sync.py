# src/weekly_planner/tasks/task_sync.py

from __future__ import annotations

"""
Recurring task sync loop.

A small trigger-driven loop that:
- reacts to the initial load, template changes, task changes and a periodic tick,
- re-reads today's instances and the templates from the stores,
- asks the recurrence engine what is missing,
- creates the missing instances through the task store.

Triggers go through a queue consumed by a single worker, so two runs never
overlap. Triggers arriving while a run is in progress are collapsed into one
follow-up run. Template edit propagation shares a lock with the runs, so it
never reads today's instances while a run is half way through creating them.
"""

import asyncio
import contextlib
import logging
from datetime import date

from ..core.errors import DuplicateInstanceError, SyncError
from ..core.ports import Clock, Scope, Subscription, TaskRepo, TemplateRepo
from .recurrence import compute_missing_instances, instances_to_refresh
from .retention import subscribe_current
from .task_models import RecurringTemplate, Task

logger = logging.getLogger(__name__)


async def materialize_today(
    task_store: TaskRepo,
    template_store: TemplateRepo,
    clock: Clock,
    scope: Scope,
) -> list[str]:
    """
    One recompute-and-create pass. Returns the ids of created instances.

    Raises SyncError when at least one create failed; the others are kept.
    """
    today = clock.today()
    weekday = clock.weekday_of(today)

    # Always read fresh: never reuse a snapshot taken before an await.
    templates = await template_store.list_all(scope)
    existing = await task_store.list_for_date(scope, today)

    requests = compute_missing_instances(templates, existing, today, weekday)
    if not requests:
        return []

    created: list[str] = []
    failed: list[str] = []
    for req in requests:
        origin = req.origin_template_id or ""
        try:
            task_id = await task_store.create(scope, req)
        except DuplicateInstanceError:
            # Another writer got there first; the invariant still holds.
            logger.info("Template %s already materialized for %s scope=%s", origin, today, scope)
            continue
        except Exception:
            logger.exception("Materializing template %s failed scope=%s", origin, scope)
            failed.append(origin)
            continue
        created.append(task_id)
        logger.info("Materialized template %s -> task %s date=%s scope=%s", origin, task_id, today, scope)

    if failed:
        raise SyncError(failed)
    return created


async def propagate_template_edit(
    task_store: TaskRepo,
    scope: Scope,
    template: RecurringTemplate,
    today: date,
) -> int:
    """
    Copy title/description/priority onto the instance materialized today.

    Updates in place (never recreates); `done` and `date` are untouched and
    instances from other days keep their values. Returns the number updated.
    """
    instances: list[Task] = await task_store.list_for_origin(scope, template.id)
    updated = 0
    for task in instances_to_refresh(template, instances, today):
        changed = await task_store.update(
            scope,
            task.id,
            title=template.title,
            description=template.description,
            priority=template.priority,
        )
        if changed:
            updated += 1
    if updated:
        logger.info("Template %s edit propagated to %d task(s) scope=%s", template.id, updated, scope)
    return updated


class SyncOrchestrator:
    """
    Keeps today's recurring instances materialized for one account scope.

    start() must be called from inside the event loop that owns the stores.
    To stop, await stop(): it releases both store subscriptions and cancels
    the worker, so nothing keeps running against a torn-down store.
    """

    def __init__(
        self,
        task_store: TaskRepo,
        template_store: TemplateRepo,
        clock: Clock,
        scope: Scope,
        *,
        interval_seconds: float = 300.0,
        retry_delay_seconds: float = 30.0,
    ) -> None:
        self.task_store = task_store
        self.template_store = template_store
        self.clock = clock
        self.scope = scope

        self._interval_s = max(0.0, float(interval_seconds))
        self._retry_s = max(0.0, float(retry_delay_seconds))

        self._queue: asyncio.Queue[str] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._ticker: asyncio.Task[None] | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._subscriptions: list[Subscription] = []
        self._lock = asyncio.Lock()

        self.runs = 0
        self.last_error: Exception | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return

        self._queue = asyncio.Queue()
        self._subscriptions = [
            self.template_store.subscribe(self.scope, self._on_templates_changed),
            subscribe_current(self.task_store, self.scope, self.clock, self._on_tasks_changed),
        ]
        self._worker = asyncio.create_task(self._run_loop(), name=f"recurring-sync:{self.scope}")
        if self._interval_s > 0:
            self._ticker = asyncio.create_task(self._tick_loop(), name=f"recurring-tick:{self.scope}")

        logger.info("Recurring sync started scope=%s", self.scope)
        self.request_sync("initial_load")

    def request_sync(self, reason: str = "manual") -> None:
        if self._queue is None or not self.running:
            return
        self._queue.put_nowait(reason)

    async def sync_once(self) -> list[str]:
        async with self._lock:
            return await materialize_today(self.task_store, self.template_store, self.clock, self.scope)

    async def apply_template_edit(self, template: RecurringTemplate) -> int:
        """Copy an edited template onto today's instance, after any run in progress."""
        async with self._lock:
            return await propagate_template_edit(self.task_store, self.scope, template, self.clock.today())

    async def wait_idle(self) -> None:
        """Wait until every queued trigger (and the runs they caused) is processed."""
        if self._queue is None or not self.running:
            return
        await self._queue.join()

    async def stop(self) -> None:
        for sub in self._subscriptions:
            with contextlib.suppress(Exception):
                sub.close()
        self._subscriptions = []

        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

        for job in (self._ticker, self._worker):
            if job is None:
                continue
            job.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await job

        self._ticker = None
        self._worker = None
        self._queue = None
        logger.info("Recurring sync stopped scope=%s", self.scope)

    # ---- internals ----

    async def _on_templates_changed(self, _templates: list[RecurringTemplate]) -> None:
        self.request_sync("templates_changed")

    async def _on_tasks_changed(self, _tasks: list[Task]) -> None:
        self.request_sync("tasks_changed")

    def _schedule_retry(self) -> None:
        if self._retry_s <= 0 or self._retry_handle is not None:
            return

        def fire() -> None:
            self._retry_handle = None
            self.request_sync("retry")

        self._retry_handle = asyncio.get_running_loop().call_later(self._retry_s, fire)

    async def _tick_loop(self) -> None:
        # Catches the day rollover while nothing else changes.
        while True:
            await asyncio.sleep(self._interval_s)
            self.request_sync("tick")

    async def _run_loop(self) -> None:
        queue = self._queue
        assert queue is not None

        while True:
            reasons = [await queue.get()]
            while True:
                try:
                    reasons.append(queue.get_nowait())
                except asyncio.QueueEmpty:
                    break

            try:
                created = await self.sync_once()
                self.last_error = None
                if created:
                    logger.info(
                        "Sync run created %d task(s) scope=%s triggers=%s",
                        len(created),
                        self.scope,
                        ",".join(sorted(set(reasons))),
                    )
            except SyncError as e:
                self.last_error = e
                logger.warning("Sync run incomplete scope=%s: %s", self.scope, e)
                self._schedule_retry()
            except Exception as e:
                self.last_error = e
                logger.exception("Sync run failed scope=%s", self.scope)
                self._schedule_retry()
            finally:
                self.runs += 1
                for _ in reasons:
                    queue.task_done()
