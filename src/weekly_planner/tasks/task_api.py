# src/weekly_planner/tasks/task_api.py

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from ..core.errors import ValidationError
from ..core.state import AppState
from .retention import RetentionPolicy, load_current
from .task_models import NewTask, NewTemplate, Priority, RecurringTemplate, Task
from .task_sync import materialize_today, propagate_template_edit

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = Priority.MEDIUM


# ---- input validation (runs before any store write) ----


def _clean_title(title: str | None) -> str:
    text = (title or "").strip()
    if not text:
        raise ValidationError("Title is required.")
    return text


def _clean_day(day: date | str | None, today: date) -> date:
    if day is None or (isinstance(day, str) and not day.strip()):
        raise ValidationError("Date is required.")
    if isinstance(day, str):
        try:
            day = date.fromisoformat(day.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {day!r} (expected YYYY-MM-DD).") from e
    elif isinstance(day, datetime):
        day = day.date()
    if day < today:
        raise ValidationError("Date cannot be in the past.")
    return day


def _clean_weekday(weekday: int | str | None) -> int:
    try:
        value = int(weekday)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid weekday: {weekday!r} (0 = Sunday ... 6 = Saturday).") from e
    if not 0 <= value <= 6:
        raise ValidationError(f"Invalid weekday: {value} (0 = Sunday ... 6 = Saturday).")
    return value


def _clean_priority(priority: Priority | str | None) -> Priority:
    if priority is None:
        return DEFAULT_PRIORITY
    if isinstance(priority, Priority):
        return priority
    parsed = Priority.parse(priority)
    if parsed is None:
        raise ValidationError(f"Invalid priority: {priority!r} (low, medium, high).")
    return parsed


# ---- task instances ----


async def add_task(
    state: AppState,
    *,
    title: str,
    day: date | str | None,
    description: str = "",
    priority: Priority | str | None = None,
) -> str:
    """Create a one-off task. The date must be today or later."""
    scope = state.require_scope()
    new = NewTask(
        title=_clean_title(title),
        description=(description or "").strip(),
        priority=_clean_priority(priority),
        date=_clean_day(day, state.clock.today()),
    )
    task_id = await state.task_store.create(scope, new)
    logger.info("Task created id=%s date=%s scope=%s", task_id, new.date, scope)
    return task_id


async def edit_task(
    state: AppState,
    task_id: str,
    *,
    title: str | None = None,
    description: str | None = None,
    day: date | str | None = None,
    priority: Priority | str | None = None,
) -> bool:
    """Change the supplied fields of a task. Returns False if the task does not exist."""
    scope = state.require_scope()

    fields: dict[str, object] = {}
    if title is not None:
        fields["title"] = _clean_title(title)
    if description is not None:
        fields["description"] = description.strip()
    if day is not None:
        fields["date"] = _clean_day(day, state.clock.today())
    if priority is not None:
        fields["priority"] = _clean_priority(priority)

    if not fields:
        return False
    return await state.task_store.update(scope, task_id, **fields)


async def set_done(state: AppState, task_id: str, done: bool = True) -> bool:
    scope = state.require_scope()
    return await state.task_store.update(scope, task_id, done=bool(done))


async def toggle_done(state: AppState, task_id: str) -> bool | None:
    """Flip the completion flag. Returns the new value, or None if the task is missing."""
    scope = state.require_scope()
    task = await state.task_store.get(scope, task_id)
    if task is None:
        return None
    new_value = not task.done
    await state.task_store.update(scope, task_id, done=new_value)
    return new_value


async def delete_task(state: AppState, task_id: str) -> bool:
    scope = state.require_scope()
    return await state.task_store.delete(scope, task_id)


async def load_tasks(state: AppState) -> list[Task]:
    """Load the account's instances with retention applied (today and later only)."""
    scope = state.require_scope()
    policy = RetentionPolicy.from_config(getattr(state.settings, "retention_policy", None))
    return await load_current(state.task_store, scope, state.clock.today(), policy)


def today_tasks(tasks: list[Task], today: date) -> list[Task]:
    return [t for t in tasks if t.date == today]


def upcoming_tasks(tasks: list[Task], today: date, days: int = 0) -> list[Task]:
    """Tasks after today; `days` > 0 limits the horizon."""
    out = [t for t in tasks if t.date > today]
    if days > 0:
        limit = today + timedelta(days=days)
        out = [t for t in out if t.date <= limit]
    return sorted(out, key=lambda t: t.date)


def progress(tasks: list[Task]) -> tuple[int, int]:
    """(completed, total) for a list of tasks."""
    return sum(1 for t in tasks if t.done), len(tasks)


# ---- recurring templates ----


async def list_templates(state: AppState) -> list[RecurringTemplate]:
    scope = state.require_scope()
    return await state.template_store.list_all(scope)


async def add_template(
    state: AppState,
    *,
    title: str,
    weekday: int | str,
    description: str = "",
    priority: Priority | str | None = None,
) -> str:
    """
    Create a weekly template. If it is due today, the sync loop materializes
    it on the store change notification.
    """
    scope = state.require_scope()
    new = NewTemplate(
        title=_clean_title(title),
        description=(description or "").strip(),
        priority=_clean_priority(priority),
        weekday=_clean_weekday(weekday),
    )
    template_id = await state.template_store.create(scope, new)
    logger.info("Template created id=%s weekday=%s scope=%s", template_id, new.weekday, scope)
    return template_id


async def edit_template(
    state: AppState,
    template_id: str,
    *,
    title: str | None = None,
    description: str | None = None,
    priority: Priority | str | None = None,
    weekday: int | str | None = None,
) -> bool:
    """
    Change a template and copy title/description/priority onto today's instance.

    Returns False if the template does not exist.
    """
    scope = state.require_scope()

    fields: dict[str, object] = {}
    if title is not None:
        fields["title"] = _clean_title(title)
    if description is not None:
        fields["description"] = description.strip()
    if priority is not None:
        fields["priority"] = _clean_priority(priority)
    if weekday is not None:
        fields["weekday"] = _clean_weekday(weekday)

    if not fields:
        return False

    changed = await state.template_store.update(scope, template_id, **fields)
    if not changed:
        return False

    if {"title", "description", "priority"} & fields.keys():
        template = await state.template_store.get(scope, template_id)
        if template is not None:
            if state.sync is not None:
                await state.sync.apply_template_edit(template)
            else:
                await propagate_template_edit(state.task_store, scope, template, state.clock.today())
    return True


async def delete_template(state: AppState, template_id: str) -> bool:
    """Delete a template; instances it already produced are kept."""
    scope = state.require_scope()
    return await state.template_store.delete(scope, template_id)


# ---- sync ----


async def sync_now(state: AppState) -> list[str] | None:
    """
    Force a materialization pass.

    With a running sync loop the request goes through its queue (so it never
    overlaps a background run) and None is returned; a failure of that run is
    raised here. Otherwise the pass runs inline and the created ids are returned.
    """
    scope = state.require_scope()
    orchestrator = state.sync
    if orchestrator is not None and orchestrator.running:
        orchestrator.request_sync("manual")
        await orchestrator.wait_idle()
        if orchestrator.last_error is not None:
            raise orchestrator.last_error
        return None
    return await materialize_today(state.task_store, state.template_store, state.clock, scope)
