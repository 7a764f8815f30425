# src/weekly_planner/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (account=%s).", state.scope)
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "planner"))
    _print_ts(f"[{app_name}] Use /help for commands, /today to start, /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            line = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not line.startswith("/"):
            # Bare text is a shortcut for adding a task for today.
            line = f"/add today {line}"

        try:
            response = command_registry.handle(state, line, emit=emit)
        except TimeoutError:
            logger.warning("Command timed out: %s", line)
            response = "The storage did not answer in time; try again."
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            print(f"{response}\n")

    logger.info("Console connector finished.")
