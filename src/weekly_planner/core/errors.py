# src/weekly_planner/core/errors.py

from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors surfaced to callers of the planner."""


class UnauthenticatedError(PlannerError):
    """A store operation was requested without an active account scope."""

    def __init__(self, message: str = "No active account. Use /login <account> first.") -> None:
        super().__init__(message)


class ValidationError(PlannerError):
    """User input rejected before any store write."""


class StoreError(PlannerError):
    """A Task/Template store operation failed."""


class DuplicateInstanceError(StoreError):
    """The store already holds an instance for this (template, date) pair."""

    def __init__(self, origin_template_id: str, day: str) -> None:
        super().__init__(f"instance for template {origin_template_id} on {day} already exists")
        self.origin_template_id = origin_template_id
        self.day = day


class SyncError(PlannerError):
    """
    One or more materializations failed during a sync run.

    Nothing is recorded as materialized for the failed templates,
    so the next trigger retries them.
    """

    def __init__(self, failed_template_ids: list[str]) -> None:
        super().__init__(f"failed to materialize {len(failed_template_ids)} template(s): {', '.join(failed_template_ids)}")
        self.failed_template_ids = list(failed_template_ids)
