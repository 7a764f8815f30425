# src/weekly_planner/connectors/background.py

"""
Background event loop for the stores and the recurring sync loop.

Why a thread:
- console REPL is blocking (input()).
- store subscriptions and the sync loop are async and want their own event loop.

The console submits coroutines with runner.call(...); everything that touches
the stores' listeners runs on this one loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.session import login, logout
from ..core.state import AppState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PlannerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, coro: Coroutine[Any, Any, T], timeout: float | None = 30.0) -> T:
        """Run a coroutine on the background loop and wait for its result."""
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            raise

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal background loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _serve(state: AppState, stop_event: asyncio.Event) -> None:
    account = str(getattr(state.settings, "account", "") or "").strip()
    if account:
        try:
            await login(state, account)
        except Exception:
            logger.exception("Auto-login failed account=%s", account)

    try:
        await stop_event.wait()
    finally:
        # Release subscriptions before the loop goes away.
        await logout(state)


def start_background_loop(state: AppState) -> PlannerBackgroundRunner | None:
    """Start the background loop thread and attach it to state.runner."""
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_serve(state, stop_event))
        except Exception:
            logger.exception("Background loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="planner-loop", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Background loop thread did not initialize properly.")
        return None

    bg = PlannerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
    state.runner = bg
    logger.info("Background loop thread started.")
    return bg
