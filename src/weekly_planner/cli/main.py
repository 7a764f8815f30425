# src/weekly_planner/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the background event loop (store subscriptions + recurring sync),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.background import start_background_loop
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    runner = getattr(state, "runner", None)
    if runner is not None:
        try:
            # Stopping the loop logs out, which releases store subscriptions.
            runner.stop()
            runner.join(timeout=10.0)
        except Exception:
            logger.debug("Background loop shutdown failed.", exc_info=True)
        state.runner = None

    for store in (getattr(state, "task_store", None), getattr(state, "template_store", None)):
        try:
            if store is not None and hasattr(store, "close"):
                store.close()
        except Exception:
            logger.debug("Store close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/planner")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "planner"))

    state = create_initial_state(settings=settings)

    if start_background_loop(state) is None:
        logger.error("Could not start the background loop; exiting.")
        return

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Ctrl+C stays a KeyboardInterrupt so input() can end the REPL.
            run_console_loop(state)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except Exception:
                # Some platforms may not support SIGTERM, etc.
                pass
            logger.info("Console disabled. Running recurring sync only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
