# src/weekly_planner/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from datetime import date
from pathlib import Path
from typing import Any

from ..core.errors import DuplicateInstanceError
from ..core.ports import Scope, TaskListener
from .store_base import ListenerHub, SqliteStoreBase, StoreSubscription
from .task_models import TASK_MUTABLE_FIELDS, NewTask, Priority, Task

logger = logging.getLogger(__name__)


def _parse_day(raw: Any) -> date | None:
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip())
    except (TypeError, ValueError):
        return None


class TaskStore(SqliteStoreBase):
    """
    SQLite store for task instances.

    Rows are partitioned by `scope` (account id). A partial unique index on
    (scope, origin_template_id, date) rejects a second instance of the same
    template on the same day, whoever writes it.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed
    """

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        super().__init__(db_path)
        self._hub: ListenerHub[Task] = ListenerHub()
        self._ensure_schema()
        try:
            total = self._count()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    scope TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    priority TEXT,
                    done INTEGER,
                    date TEXT NOT NULL,
                    origin_template_id TEXT,
                    created_at REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            self._add_missing_columns(
                cur,
                "tasks",
                {
                    "description": "TEXT NOT NULL DEFAULT ''",
                    "priority": "TEXT",
                    "done": "INTEGER",
                    "origin_template_id": "TEXT",
                    "created_at": "REAL NOT NULL DEFAULT 0",
                    "updated_at": "REAL NOT NULL DEFAULT 0",
                },
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_scope_date ON tasks(scope, date)")
            cur.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_origin_date "
                "ON tasks(scope, origin_template_id, date) "
                "WHERE origin_template_id IS NOT NULL"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task | None:
        day = _parse_day(row["date"])
        if day is None:
            logger.warning("Skipping task id=%s with unreadable date=%r", row["id"], row["date"])
            return None
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            priority=Priority.from_db(row["priority"]),
            done=bool(row["done"]) if row["done"] is not None else False,
            date=day,
            origin_template_id=row["origin_template_id"] or None,
        )

    def _rows_to_tasks(self, rows: list[sqlite3.Row]) -> list[Task]:
        out: list[Task] = []
        for r in rows:
            task = self._row_to_task(r)
            if task is not None:
                out.append(task)
        return out

    def _count(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def _select(self, where: str, params: tuple[Any, ...]) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"SELECT * FROM tasks WHERE {where} ORDER BY date ASC, created_at ASC",
                params,
            )
            return self._rows_to_tasks(cur.fetchall())
        finally:
            conn.close()

    def _insert(self, scope: Scope, new: NewTask) -> str:
        task_id = uuid.uuid4().hex
        now = time.time()
        conn = self._get_conn()
        try:
            try:
                conn.execute(
                    """
                    INSERT INTO tasks(
                        id, scope, title, description, priority, done, date,
                        origin_template_id, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task_id,
                        scope.account_id,
                        new.title,
                        new.description,
                        Priority.from_db(new.priority).value,
                        1 if new.done else 0,
                        new.date.isoformat(),
                        new.origin_template_id,
                        now,
                        now,
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                if new.origin_template_id:
                    raise DuplicateInstanceError(new.origin_template_id, new.date.isoformat()) from e
                raise
            logger.debug(
                "Task added id=%s scope=%s date=%s origin=%s",
                task_id,
                scope,
                new.date,
                new.origin_template_id,
            )
            return task_id
        finally:
            conn.close()

    def _update(self, scope: Scope, task_id: str, fields: dict[str, Any]) -> bool:
        cols: list[str] = []
        params: list[Any] = []

        for name, value in fields.items():
            if name == "priority":
                value = Priority.from_db(value).value
            elif name == "done":
                value = 1 if value else 0
            elif name == "date":
                value = value.isoformat() if isinstance(value, date) else str(value)
            cols.append(f"{name} = ?")
            params.append(value)

        if not cols:
            return False

        cols.append("updated_at = ?")
        params.append(time.time())
        params.extend([task_id, scope.account_id])

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"UPDATE tasks SET {', '.join(cols)} WHERE id = ? AND scope = ?",
                params,
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def _delete(self, scope: Scope, task_ids: list[str]) -> int:
        if not task_ids:
            return 0
        placeholders = ",".join("?" for _ in task_ids)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"DELETE FROM tasks WHERE scope = ? AND id IN ({placeholders})",
                (scope.account_id, *task_ids),
            )
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()

    async def _notify(self, scope: Scope) -> None:
        if not self._hub.has_listeners(scope):
            return
        try:
            items = await self.list_all(scope)
        except Exception:
            logger.exception("TaskStore notify: list failed scope=%s", scope)
            return
        await self._hub.publish(scope, items)

    # ---- public API ----

    async def list_all(self, scope: Scope) -> list[Task]:
        return await self._run(self._select, "scope = ?", (scope.account_id,))

    async def list_for_date(self, scope: Scope, day: date) -> list[Task]:
        return await self._run(self._select, "scope = ? AND date = ?", (scope.account_id, day.isoformat()))

    async def list_for_origin(self, scope: Scope, template_id: str) -> list[Task]:
        return await self._run(
            self._select,
            "scope = ? AND origin_template_id = ?",
            (scope.account_id, template_id),
        )

    async def get(self, scope: Scope, task_id: str) -> Task | None:
        items = await self._run(self._select, "scope = ? AND id = ?", (scope.account_id, task_id))
        return items[0] if items else None

    def subscribe(self, scope: Scope, listener: TaskListener) -> StoreSubscription:
        return self._hub.add(scope, listener)

    async def create(self, scope: Scope, new: NewTask) -> str:
        task_id = await self._run(self._insert, scope, new)
        await self._notify(scope)
        return task_id

    async def update(self, scope: Scope, task_id: str, **fields: Any) -> bool:
        unknown = set(fields) - TASK_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update task fields: {', '.join(sorted(unknown))}")
        changed = await self._run(self._update, scope, task_id, fields)
        if changed:
            await self._notify(scope)
        return changed

    async def delete(self, scope: Scope, task_id: str) -> bool:
        removed = await self._run(self._delete, scope, [task_id])
        if removed:
            await self._notify(scope)
        return removed > 0

    async def delete_many(self, scope: Scope, task_ids: list[str]) -> int:
        """Bulk delete used by the purge retention policy (one notification)."""
        removed = await self._run(self._delete, scope, list(task_ids))
        if removed:
            await self._notify(scope)
        return removed

    async def count(self) -> int:
        return await self._run(self._count)
