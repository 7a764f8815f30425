# src/weekly_planner/tasks/store_base.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..core.errors import StoreError
from ..core.ports import Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Listener = Callable[[list[T]], Awaitable[None]]


@dataclass(slots=True)
class StoreSubscription:
    """Returned by subscribe(); close() is idempotent."""

    _release: Callable[[], None]
    closed: bool = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release()


class ListenerHub(Generic[T]):
    """Per-scope listener registry used to push live updates after writes."""

    def __init__(self) -> None:
        self._listeners: dict[Scope, list[Listener[T]]] = {}

    def add(self, scope: Scope, listener: Listener[T]) -> StoreSubscription:
        self._listeners.setdefault(scope, []).append(listener)

        def release() -> None:
            items = self._listeners.get(scope)
            if not items:
                return
            with contextlib.suppress(ValueError):
                items.remove(listener)
            if not items:
                self._listeners.pop(scope, None)

        return StoreSubscription(release)

    def has_listeners(self, scope: Scope) -> bool:
        return bool(self._listeners.get(scope))

    async def publish(self, scope: Scope, items: list[T]) -> None:
        # Copy: a listener may unsubscribe while we iterate.
        for listener in list(self._listeners.get(scope, ())):
            try:
                await listener(list(items))
            except Exception:
                logger.exception("Store listener failed scope=%s", scope)


class SqliteStoreBase:
    """
    Shared plumbing for the SQLite stores.

    - each blocking call opens its own SQLite connection
    - public coroutines run the blocking part in a worker thread
    - sqlite3 errors surface as StoreError
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    @staticmethod
    def _add_missing_columns(cur: sqlite3.Cursor, table: str, columns: dict[str, str]) -> None:
        cur.execute(f"PRAGMA table_info({table})")
        existing = {row["name"] for row in cur.fetchall()}
        for name, decl in columns.items():
            if name in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
            logger.info("%s migration: added column %s", table, name)

    async def _run(self, fn: Callable[..., R], *args: Any) -> R:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            raise StoreError(f"{getattr(fn, '__name__', 'sqlite op')} failed: {e}") from e
