# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from weekly_planner.core.clock import FixedClock
from weekly_planner.core.ports import Scope
from weekly_planner.core.state import AppState
from weekly_planner.tasks.task_store import TaskStore
from weekly_planner.tasks.template_store import TemplateStore

# Monday, weekday 1.
MONDAY = date(2024, 6, 10)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="planner-test",
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        account="",
        retention_policy="filter",
        upcoming_days=30,
        # Background sync is exercised directly in test_task_sync.py.
        sync_enabled=False,
        sync_interval_seconds=0.0,
        sync_retry_delay_seconds=0.0,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(MONDAY)


@pytest.fixture()
def scope() -> Scope:
    return Scope("alice")


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.db_path)


@pytest.fixture()
def template_store(settings: SimpleNamespace) -> TemplateStore:
    return TemplateStore(settings.db_path)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    task_store: TaskStore,
    template_store: TemplateStore,
    clock: FixedClock,
) -> AppState:
    """
    AppState wired with real SQLite stores and a fixed clock, nobody logged in.

    NOTE: We keep real SQLite stores here because their correctness
    (scoping, uniqueness guard) is part of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=task_store,
        template_store=template_store,
        clock=clock,
    )


@pytest.fixture()
def logged_in(state: AppState, scope: Scope) -> AppState:
    state.scope = scope
    return state
