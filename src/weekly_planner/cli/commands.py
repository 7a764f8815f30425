# src/weekly_planner/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine
from datetime import date, timedelta
from typing import Any, TypeVar, cast

from ..core.errors import PlannerError
from ..core.session import login, logout
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_models import Priority, RecurringTemplate, Task

T = TypeVar("T")

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_WEEKDAY_ALIASES = {
    # Portuguese names from the first version of the app.
    "dom": 0, "domingo": 0,
    "seg": 1, "segunda": 1,
    "ter": 2, "terca": 2, "terça": 2,
    "qua": 3, "quarta": 3,
    "qui": 4, "quinta": 4,
    "sex": 5, "sexta": 5,
    "sab": 6, "sabado": 6, "sábado": 6,
}

SHORT_ID = 8


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except PlannerError as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _await(state: AppState, coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on the background loop when there is one, inline otherwise."""
    runner = getattr(state, "runner", None)
    if runner is not None:
        return runner.call(coro)
    return asyncio.run(coro)


def parse_weekday(raw: str) -> int | None:
    key = (raw or "").strip().lower()
    if key.isdigit():
        n = int(key)
        return n if 0 <= n <= 6 else None
    for i, name in enumerate(WEEKDAY_NAMES):
        lowered = name.lower()
        if key in (lowered, lowered[:3]):
            return i
    return _WEEKDAY_ALIASES.get(key)


def parse_day(raw: str, today: date) -> date | str:
    """today / tomorrow / YYYY-MM-DD; anything else is returned untouched for validation."""
    key = (raw or "").strip().lower()
    if key in ("today", "hoje"):
        return today
    if key in ("tomorrow", "amanha", "amanhã"):
        return today + timedelta(days=1)
    return raw


def _split_title(words: list[str]) -> tuple[str, str]:
    """'Title words | description words' -> (title, description)."""
    text = " ".join(words)
    title, _, description = text.partition("|")
    return title.strip(), description.strip()


def _take_priority(words: list[str]) -> tuple[Priority | None, list[str]]:
    if words:
        p = Priority.parse(words[0])
        if p is not None:
            return p, words[1:]
    return None, words


def format_day(day: date) -> str:
    return f"{day.strftime('%a')} {day.strftime('%d/%m/%Y')}"


def format_task(task: Task) -> str:
    box = "[x]" if task.done else "[ ]"
    line = f"{box} {task.id[:SHORT_ID]}  {task.title}  ({task.priority.value})"
    if task.origin_template_id:
        line += "  [weekly]"
    if task.description:
        line += f"\n        {task.description}"
    return line


def format_template(tpl: RecurringTemplate) -> str:
    line = f"{tpl.id[:SHORT_ID]}  every {WEEKDAY_NAMES[tpl.weekday]}: {tpl.title}  ({tpl.priority.value})"
    if tpl.description:
        line += f"\n        {tpl.description}"
    return line


def _resolve_id(prefix: str, ids: list[str], what: str) -> str:
    matches = [i for i in ids if i.startswith(prefix)]
    if not matches:
        raise PlannerError(f"No {what} with id {prefix}.")
    if len(matches) > 1:
        raise PlannerError(f"Ambiguous {what} id {prefix} ({len(matches)} matches); type more characters.")
    return matches[0]


def _resolve_task_id(state: AppState, prefix: str) -> str:
    tasks = _await(state, task_api.load_tasks(state))
    return _resolve_id(prefix, [t.id for t in tasks], "task")


def _resolve_template_id(state: AppState, prefix: str) -> str:
    templates = _await(state, task_api.list_templates(state))
    return _resolve_id(prefix, [t.id for t in templates], "recurring task")


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    account = state.scope.account_id if state.scope else "(not logged in)"
    policy = getattr(state.settings, "retention_policy", "filter")
    if state.sync is None:
        sync = "OFF"
    else:
        sync = "running" if state.sync.running else "stopped"
        sync += f", runs: {state.sync.runs}"
        if state.sync.last_error is not None:
            sync += f", last error: {state.sync.last_error}"
    today = state.clock.today()
    return (
        "Status:\n"
        f"  Account: {account}\n"
        f"  Today: {format_day(today)} (weekday {state.clock.weekday_of(today)})\n"
        f"  Past tasks: {policy}\n"
        f"  Recurring sync: {sync}"
    )


def cmd_login(state: AppState, args: list[str]) -> str:
    """/login <account>"""
    if not args:
        return "Usage: /login <account>"
    scope = _await(state, login(state, args[0]))
    return f"Logged in as {scope.account_id}."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.scope is None:
        return "Not logged in."
    _await(state, logout(state))
    return "Logged out."


def cmd_today(state: AppState, args: list[str]) -> str:
    today = state.clock.today()
    tasks = task_api.today_tasks(_await(state, task_api.load_tasks(state)), today)
    done, total = task_api.progress(tasks)
    pct = round(done / total * 100) if total else 0
    lines = [f"Today, {format_day(today)}: {done}/{total} done ({pct}%)"]
    if not tasks:
        lines.append("  Nothing for today.")
    for t in tasks:
        lines.append("  " + format_task(t))
    return "\n".join(lines)


def cmd_upcoming(state: AppState, args: list[str]) -> str:
    """
    /upcoming        -> next N days (PLANNER_UPCOMING_DAYS)
    /upcoming <days> -> custom horizon (0 = everything)
    """
    days = int(getattr(state.settings, "upcoming_days", 30))
    if args:
        try:
            days = max(0, int(args[0]))
        except ValueError:
            return "Usage: /upcoming [days]"

    today = state.clock.today()
    tasks = task_api.upcoming_tasks(_await(state, task_api.load_tasks(state)), today, days)
    if not tasks:
        return "No upcoming tasks."

    # Group by day for display.
    groups: dict[date, list[Task]] = {}
    for t in tasks:
        groups.setdefault(t.date, []).append(t)

    lines: list[str] = []
    for day in sorted(groups):
        lines.append(format_day(day))
        for t in groups[day]:
            lines.append("  " + format_task(t))
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <today|tomorrow|YYYY-MM-DD> [low|medium|high] <title> [| description]"""
    if len(args) < 2:
        return "Usage: /add <today|tomorrow|YYYY-MM-DD> [low|medium|high] <title> [| description]"
    day = parse_day(args[0], state.clock.today())
    priority, rest = _take_priority(args[1:])
    title, description = _split_title(rest)
    task_id = _await(
        state,
        task_api.add_task(state, title=title, day=day, description=description, priority=priority),
    )
    return f"Task added: {task_id[:SHORT_ID]}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> title|desc|date|priority <value>"""
    if len(args) < 3:
        return "Usage: /edit <id> title|desc|date|priority <value>"
    task_id = _resolve_task_id(state, args[0])
    field = args[1].lower()
    value = " ".join(args[2:])

    if field == "title":
        coro = task_api.edit_task(state, task_id, title=value)
    elif field in ("desc", "description"):
        coro = task_api.edit_task(state, task_id, description=value)
    elif field == "date":
        coro = task_api.edit_task(state, task_id, day=parse_day(value, state.clock.today()))
    elif field == "priority":
        coro = task_api.edit_task(state, task_id, priority=value)
    else:
        return "Unknown field. Use title, desc, date or priority."

    return "Task updated." if _await(state, coro) else "Task not found."


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task_id = _resolve_task_id(state, args[0])
    result = _await(state, task_api.toggle_done(state, task_id))
    if result is None:
        return "Task not found."
    return "Marked as done." if result else "Marked as not done."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task_id = _resolve_task_id(state, args[0])
    return "Task deleted." if _await(state, task_api.delete_task(state, task_id)) else "Task not found."


_RECUR_USAGE = (
    "Recurring tasks:\n"
    "  /recur list\n"
    "  /recur add <weekday> [low|medium|high] <title> [| description]\n"
    "  /recur edit <id> title|desc|priority|weekday <value>\n"
    "  /recur rm <id>\n"
    "Weekday: 0-6 (0 = Sunday) or a name (mon, tuesday, ...)."
)


def cmd_recur(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return _RECUR_USAGE

    sub = args[0].lower()
    rest = args[1:]

    if sub in ("list", "ls"):
        templates = _await(state, task_api.list_templates(state))
        if not templates:
            return "No recurring tasks."
        return "\n".join(format_template(t) for t in templates)

    if sub == "add":
        if len(rest) < 2:
            return _RECUR_USAGE
        weekday = parse_weekday(rest[0])
        if weekday is None:
            return f"Unknown weekday: {rest[0]}"
        priority, words = _take_priority(rest[1:])
        title, description = _split_title(words)
        template_id = _await(
            state,
            task_api.add_template(
                state, title=title, weekday=weekday, description=description, priority=priority
            ),
        )
        if emit is not None and weekday == state.clock.weekday_of(state.clock.today()):
            emit("Due today: it will show up in /today.")
        return f"Recurring task added: {template_id[:SHORT_ID]} (every {WEEKDAY_NAMES[weekday]})"

    if sub == "edit":
        if len(rest) < 3:
            return _RECUR_USAGE
        template_id = _resolve_template_id(state, rest[0])
        field = rest[1].lower()
        value = " ".join(rest[2:])
        if field == "title":
            coro = task_api.edit_template(state, template_id, title=value)
        elif field in ("desc", "description"):
            coro = task_api.edit_template(state, template_id, description=value)
        elif field == "priority":
            coro = task_api.edit_template(state, template_id, priority=value)
        elif field == "weekday":
            weekday = parse_weekday(value)
            if weekday is None:
                return f"Unknown weekday: {value}"
            coro = task_api.edit_template(state, template_id, weekday=weekday)
        else:
            return "Unknown field. Use title, desc, priority or weekday."
        return "Recurring task updated." if _await(state, coro) else "Recurring task not found."

    if sub in ("rm", "del", "delete"):
        if not rest:
            return _RECUR_USAGE
        template_id = _resolve_template_id(state, rest[0])
        removed = _await(state, task_api.delete_template(state, template_id))
        return "Recurring task deleted." if removed else "Recurring task not found."

    return _RECUR_USAGE


def cmd_sync(state: AppState, args: list[str]) -> str:
    created = _await(state, task_api.sync_now(state))
    if created is None:
        return "Recurring tasks are up to date."
    return f"Recurring tasks synced: {len(created)} created."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show account, date and sync status.")
registry.register("login", cmd_login, help_text="Switch to an account: /login <account>.")
registry.register("logout", cmd_logout, help_text="Leave the current account.")
registry.register("today", cmd_today, help_text="Today's tasks and progress.", aliases=["t"])
registry.register("upcoming", cmd_upcoming, help_text="Future tasks grouped by day: /upcoming [days].")
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <today|tomorrow|YYYY-MM-DD> [priority] <title> [| description].",
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> title|desc|date|priority <value>.")
registry.register("done", cmd_done, help_text="Toggle a task's completion: /done <id>.", aliases=["x"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("recur", cmd_recur, help_text="Weekly recurring tasks: /recur list|add|edit|rm.", aliases=["r"])
registry.register("sync", cmd_sync, help_text="Create today's recurring tasks now.")
