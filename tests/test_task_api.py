# tests/test_task_api.py

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from weekly_planner.core.errors import SyncError, UnauthenticatedError, ValidationError
from weekly_planner.core.ports import Scope
from weekly_planner.core.session import login, logout
from weekly_planner.core.state import AppState
from weekly_planner.tasks import task_api
from weekly_planner.tasks.task_models import NewTask, NewTemplate, Priority

from .conftest import MONDAY
from .fakes import InMemoryTaskRepo, InMemoryTemplateRepo, make_template


@pytest.mark.asyncio
async def test_add_task_and_views(logged_in: AppState) -> None:
    state = logged_in
    today_id = await task_api.add_task(state, title="  Pay rent ", day=MONDAY, priority="high")
    await task_api.add_task(state, title="Dentist", day="2024-06-12", description="bring card")
    await task_api.add_task(state, title="Far away", day=MONDAY + timedelta(days=60))

    tasks = await task_api.load_tasks(state)
    today = task_api.today_tasks(tasks, MONDAY)
    assert [(t.id, t.title, t.priority) for t in today] == [(today_id, "Pay rent", Priority.HIGH)]

    upcoming = task_api.upcoming_tasks(tasks, MONDAY, days=30)
    assert [(t.title, t.description, t.priority) for t in upcoming] == [
        ("Dentist", "bring card", Priority.MEDIUM)
    ]
    assert len(task_api.upcoming_tasks(tasks, MONDAY)) == 2

    assert await task_api.toggle_done(state, today_id) is True
    tasks = await task_api.load_tasks(state)
    assert task_api.progress(task_api.today_tasks(tasks, MONDAY)) == (1, 1)
    assert await task_api.toggle_done(state, today_id) is False
    assert await task_api.toggle_done(state, "missing") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": "   ", "day": MONDAY},
        {"title": "No date", "day": None},
        {"title": "No date", "day": ""},
        {"title": "Yesterday", "day": MONDAY - timedelta(days=1)},
        {"title": "Late last night", "day": datetime(2024, 6, 9, 23, 30)},
        {"title": "Bad date", "day": "10/06/2024"},
        {"title": "Bad priority", "day": MONDAY, "priority": "urgent"},
    ],
)
async def test_invalid_task_input_writes_nothing(logged_in: AppState, kwargs) -> None:
    with pytest.raises(ValidationError):
        await task_api.add_task(logged_in, **kwargs)
    assert await logged_in.task_store.list_all(logged_in.scope) == []


@pytest.mark.asyncio
async def test_edit_task_validates_and_updates(logged_in: AppState) -> None:
    state = logged_in
    task_id = await task_api.add_task(state, title="Draft", day=MONDAY)

    with pytest.raises(ValidationError):
        await task_api.edit_task(state, task_id, day=MONDAY - timedelta(days=3))
    with pytest.raises(ValidationError):
        await task_api.edit_task(state, task_id, title="")

    assert await task_api.edit_task(state, task_id, title="Final", day="2024-06-11", priority="low")
    task = await state.task_store.get(state.scope, task_id)
    assert task is not None
    assert (task.title, task.date, task.priority) == ("Final", date(2024, 6, 11), Priority.LOW)

    assert not await task_api.edit_task(state, task_id)
    assert not await task_api.edit_task(state, "missing", title="x")

    assert await task_api.delete_task(state, task_id)
    assert not await task_api.delete_task(state, task_id)


@pytest.mark.asyncio
async def test_operations_without_scope_are_rejected_before_store(state: AppState) -> None:
    assert state.scope is None

    with pytest.raises(UnauthenticatedError):
        await task_api.add_task(state, title="x", day=MONDAY)
    with pytest.raises(UnauthenticatedError):
        await task_api.add_template(state, title="x", weekday=1)
    with pytest.raises(UnauthenticatedError):
        await task_api.load_tasks(state)
    with pytest.raises(UnauthenticatedError):
        await task_api.delete_template(state, "r1")
    with pytest.raises(UnauthenticatedError):
        await task_api.sync_now(state)

    assert await state.task_store.count() == 0


@pytest.mark.asyncio
async def test_template_validation(logged_in: AppState) -> None:
    with pytest.raises(ValidationError):
        await task_api.add_template(logged_in, title="", weekday=1)
    with pytest.raises(ValidationError):
        await task_api.add_template(logged_in, title="x", weekday=7)
    with pytest.raises(ValidationError):
        await task_api.add_template(logged_in, title="x", weekday="monday")
    assert await task_api.list_templates(logged_in) == []


@pytest.mark.asyncio
async def test_sync_now_inline_and_template_edit_propagation(logged_in: AppState) -> None:
    state = logged_in
    tid = await task_api.add_template(state, title="Standup", weekday=1, priority="medium")
    await task_api.add_template(state, title="Gym", weekday=3)

    created = await task_api.sync_now(state)
    assert created is not None and len(created) == 1
    assert await task_api.sync_now(state) == []

    # Same template, next week's instance (created directly, as if materialized earlier).
    next_week = MONDAY + timedelta(days=7)
    await state.task_store.create(
        state.scope,
        NewTask(title="Standup", description="", priority=Priority.MEDIUM, date=next_week, origin_template_id=tid),
    )

    [today_task] = await state.task_store.list_for_date(state.scope, MONDAY)
    await task_api.set_done(state, today_task.id, True)

    assert await task_api.edit_template(state, tid, title="Daily standup", priority="high", description="10am")

    by_date = {t.date: t for t in await state.task_store.list_for_origin(state.scope, tid)}
    assert by_date[MONDAY].title == "Daily standup"
    assert by_date[MONDAY].description == "10am"
    assert by_date[MONDAY].priority == Priority.HIGH
    assert by_date[MONDAY].done is True
    assert by_date[MONDAY].id == today_task.id
    assert by_date[next_week].title == "Standup"

    assert not await task_api.edit_template(state, "missing", title="x")


@pytest.mark.asyncio
async def test_delete_template_keeps_materialized_instances(logged_in: AppState) -> None:
    state = logged_in
    tid = await task_api.add_template(state, title="Standup", weekday=1)
    await task_api.sync_now(state)

    assert await task_api.delete_template(state, tid)

    [task] = await task_api.load_tasks(state)
    assert task.origin_template_id == tid
    assert task.title == "Standup"
    assert await task_api.sync_now(state) == []


@pytest.mark.asyncio
async def test_purge_policy_applies_on_load(logged_in: AppState) -> None:
    state = logged_in
    state.settings.retention_policy = "purge"
    await state.task_store.create(
        state.scope,
        NewTask(title="old", description="", priority=Priority.LOW, date=MONDAY - timedelta(days=1)),
    )
    await task_api.add_task(state, title="now", day=MONDAY)

    assert [t.title for t in await task_api.load_tasks(state)] == ["now"]
    assert [t.title for t in await state.task_store.list_all(state.scope)] == ["now"]


@pytest.mark.asyncio
async def test_login_starts_sync_and_logout_stops_it(state: AppState) -> None:
    state.settings.sync_enabled = True
    await state.template_store.create(Scope("alice"), NewTemplate("Standup", "", Priority.MEDIUM, 1))

    scope = await login(state, "alice")
    assert state.scope == scope
    assert state.sync is not None and state.sync.running

    assert await task_api.sync_now(state) is None
    [task] = await task_api.load_tasks(state)
    assert task.title == "Standup"

    orchestrator = state.sync
    await logout(state)
    assert state.scope is None
    assert state.sync is None
    assert not orchestrator.running

    with pytest.raises(ValidationError):
        await login(state, "  ")


@pytest.mark.asyncio
async def test_datetime_day_is_stored_as_its_calendar_date(logged_in: AppState) -> None:
    task_id = await task_api.add_task(logged_in, title="Call mum", day=datetime(2024, 6, 10, 18, 45))

    task = await logged_in.task_store.get(logged_in.scope, task_id)
    assert task is not None
    assert task.date == MONDAY
    assert type(task.date) is date


@pytest.mark.asyncio
async def test_sync_now_raises_when_background_run_fails(settings, clock) -> None:
    alice = Scope("alice")
    tasks, templates = InMemoryTaskRepo(), InMemoryTemplateRepo()
    templates.seed(alice, make_template("r1", 1, title="Standup"))
    tasks.fail_origins = {"r1"}
    settings.sync_enabled = True
    state = AppState(settings=settings, task_store=tasks, template_store=templates, clock=clock)

    await login(state, "alice")
    try:
        with pytest.raises(SyncError) as exc:
            await task_api.sync_now(state)
        assert exc.value.failed_template_ids == ["r1"]
        assert tasks.tasks(alice) == []

        tasks.fail_origins = set()
        assert await task_api.sync_now(state) is None
        assert [t.origin_template_id for t in tasks.tasks(alice)] == ["r1"]
    finally:
        await logout(state)
