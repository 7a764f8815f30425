# src/weekly_planner/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import UnauthenticatedError
from .ports import Clock, Scope, TaskRepo, TemplateRepo

if TYPE_CHECKING:
    from ..tasks.task_sync import SyncOrchestrator


@dataclass
class AppState:
    # Settings object (real Settings or a SimpleNamespace in tests).
    settings: Any

    task_store: TaskRepo
    template_store: TemplateRepo
    clock: Clock

    # Active account; None means nobody is logged in.
    scope: Scope | None = None

    # Background materializer for the active scope (None when sync is disabled).
    sync: SyncOrchestrator | None = None

    # Event-loop thread hosting the stores' subscriptions and the sync loop
    # (PlannerBackgroundRunner); None when coroutines are run inline.
    runner: Any = None

    def require_scope(self) -> Scope:
        if self.scope is None:
            raise UnauthenticatedError()
        return self.scope
