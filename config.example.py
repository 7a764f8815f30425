# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "PLANNER_APP_NAME": "App display name (default: planner).",
    "PLANNER_LOG_LEVEL": "Console logging level (default: INFO).",
    # Switches
    "PLANNER_CONSOLE_ENABLED": "Run the console REPL (true/false).",
    "PLANNER_SYNC_ENABLED": "Materialize recurring tasks in the background (true/false).",
    # Account
    "PLANNER_ACCOUNT": "Account scope activated on start (empty => use /login).",
    # Paths (gitignored)
    "PLANNER_DATA_DIR": "Local data directory for logs and the database (default: .local/planner).",
    "PLANNER_DB_PATH": "SQLite path for tasks and recurring tasks (default: <data_dir>/planner.sqlite3).",
    # Behaviour
    "PLANNER_RETENTION_POLICY": (
        "What to do with tasks dated before today on load: "
        "'filter' hides them (default), 'purge' deletes them."
    ),
    "PLANNER_UPCOMING_DAYS": "Horizon of /upcoming in days (default: 30, 0 => unlimited).",
    "PLANNER_SYNC_INTERVAL_SECONDS": "Periodic recurring re-check, catches midnight (default: 300).",
    "PLANNER_SYNC_RETRY_DELAY_SECONDS": "Delay before retrying a failed sync run (default: 30).",
}
