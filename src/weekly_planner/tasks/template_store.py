# src/weekly_planner/tasks/template_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from ..core.ports import Scope, TemplateListener
from .store_base import ListenerHub, SqliteStoreBase, StoreSubscription
from .task_models import TEMPLATE_MUTABLE_FIELDS, NewTemplate, Priority, RecurringTemplate

logger = logging.getLogger(__name__)


class TemplateStore(SqliteStoreBase):
    """SQLite store for weekly recurring templates, partitioned by scope."""

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        super().__init__(db_path)
        self._hub: ListenerHub[RecurringTemplate] = ListenerHub()
        self._ensure_schema()
        logger.info("TemplateStore ready db=%s", self._db_path)

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS recurring_templates (
                    id TEXT PRIMARY KEY,
                    scope TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    priority TEXT,
                    weekday INTEGER NOT NULL,
                    created_at REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )
            self._add_missing_columns(
                cur,
                "recurring_templates",
                {
                    "description": "TEXT NOT NULL DEFAULT ''",
                    "priority": "TEXT",
                    "created_at": "REAL NOT NULL DEFAULT 0",
                    "updated_at": "REAL NOT NULL DEFAULT 0",
                },
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_templates_scope_weekday "
                "ON recurring_templates(scope, weekday)"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_template(row: sqlite3.Row) -> RecurringTemplate | None:
        try:
            weekday = int(row["weekday"])
        except (TypeError, ValueError):
            weekday = -1
        if not 0 <= weekday <= 6:
            logger.warning("Skipping template id=%s with weekday=%r", row["id"], row["weekday"])
            return None
        return RecurringTemplate(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            priority=Priority.from_db(row["priority"]),
            weekday=weekday,
        )

    def _select(self, where: str, params: tuple[Any, ...]) -> list[RecurringTemplate]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"SELECT * FROM recurring_templates WHERE {where} ORDER BY weekday ASC, created_at ASC",
                params,
            )
            out: list[RecurringTemplate] = []
            for r in cur.fetchall():
                tpl = self._row_to_template(r)
                if tpl is not None:
                    out.append(tpl)
            return out
        finally:
            conn.close()

    def _insert(self, scope: Scope, new: NewTemplate) -> str:
        template_id = uuid.uuid4().hex
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO recurring_templates(
                    id, scope, title, description, priority, weekday, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    template_id,
                    scope.account_id,
                    new.title,
                    new.description,
                    Priority.from_db(new.priority).value,
                    int(new.weekday),
                    now,
                    now,
                ),
            )
            conn.commit()
            logger.debug("Template added id=%s scope=%s weekday=%s", template_id, scope, new.weekday)
            return template_id
        finally:
            conn.close()

    def _update(self, scope: Scope, template_id: str, fields: dict[str, Any]) -> bool:
        cols: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name == "priority":
                value = Priority.from_db(value).value
            elif name == "weekday":
                value = int(value)
            cols.append(f"{name} = ?")
            params.append(value)

        if not cols:
            return False

        cols.append("updated_at = ?")
        params.append(time.time())
        params.extend([template_id, scope.account_id])

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"UPDATE recurring_templates SET {', '.join(cols)} WHERE id = ? AND scope = ?",
                params,
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def _delete(self, scope: Scope, template_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM recurring_templates WHERE id = ? AND scope = ?",
                (template_id, scope.account_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    async def _notify(self, scope: Scope) -> None:
        if not self._hub.has_listeners(scope):
            return
        try:
            items = await self.list_all(scope)
        except Exception:
            logger.exception("TemplateStore notify: list failed scope=%s", scope)
            return
        await self._hub.publish(scope, items)

    # ---- public API ----

    async def list_all(self, scope: Scope) -> list[RecurringTemplate]:
        return await self._run(self._select, "scope = ?", (scope.account_id,))

    async def get(self, scope: Scope, template_id: str) -> RecurringTemplate | None:
        items = await self._run(self._select, "scope = ? AND id = ?", (scope.account_id, template_id))
        return items[0] if items else None

    def subscribe(self, scope: Scope, listener: TemplateListener) -> StoreSubscription:
        return self._hub.add(scope, listener)

    async def create(self, scope: Scope, new: NewTemplate) -> str:
        template_id = await self._run(self._insert, scope, new)
        await self._notify(scope)
        return template_id

    async def update(self, scope: Scope, template_id: str, **fields: Any) -> bool:
        unknown = set(fields) - TEMPLATE_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update template fields: {', '.join(sorted(unknown))}")
        changed = await self._run(self._update, scope, template_id, fields)
        if changed:
            await self._notify(scope)
        return changed

    async def delete(self, scope: Scope, template_id: str) -> bool:
        # Instances already materialized from this template are left alone.
        removed = await self._run(self._delete, scope, template_id)
        if removed:
            await self._notify(scope)
        return removed
