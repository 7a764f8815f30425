# src/weekly_planner/core/session.py

from __future__ import annotations

import logging

from ..tasks.task_sync import SyncOrchestrator
from .errors import ValidationError
from .ports import Scope
from .state import AppState

logger = logging.getLogger(__name__)


async def login(state: AppState, account_id: str) -> Scope:
    """
    Activate an account scope and (if enabled) start its sync loop.

    Switching accounts tears the previous loop down first.
    """
    account_id = (account_id or "").strip()
    if not account_id:
        raise ValidationError("account id is required")

    if state.scope is not None and state.scope.account_id == account_id:
        return state.scope

    await logout(state)

    scope = Scope(account_id)
    state.scope = scope

    if bool(getattr(state.settings, "sync_enabled", True)):
        orchestrator = SyncOrchestrator(
            state.task_store,
            state.template_store,
            state.clock,
            scope,
            interval_seconds=float(getattr(state.settings, "sync_interval_seconds", 300.0)),
            retry_delay_seconds=float(getattr(state.settings, "sync_retry_delay_seconds", 30.0)),
        )
        orchestrator.start()
        state.sync = orchestrator

    logger.info("Logged in scope=%s", scope)
    return scope


async def logout(state: AppState) -> None:
    """Release live subscriptions and stop the sync loop for the current scope."""
    if state.sync is not None:
        try:
            await state.sync.stop()
        except Exception:
            logger.exception("Stopping sync loop failed scope=%s", state.scope)
        state.sync = None

    if state.scope is not None:
        logger.info("Logged out scope=%s", state.scope)
    state.scope = None
