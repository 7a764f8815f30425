# src/weekly_planner/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a local default.
- Module-level constants are exported for quick access in scripts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "PLANNER"

RETENTION_POLICIES = ("filter", "purge")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector / background switches ----
    console_enabled: bool
    sync_enabled: bool

    # ---- Account scope activated on start ("" = none) ----
    account: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Behaviour ----
    retention_policy: str
    upcoming_days: int
    sync_interval_seconds: float
    sync_retry_delay_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "planner").strip() or "planner"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        sync_enabled = _env_bool(_k("SYNC_ENABLED"), True)

        account = _env(_k("ACCOUNT"), "").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/planner"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "planner.sqlite3")

        retention_policy = _env_choice(_k("RETENTION_POLICY"), RETENTION_POLICIES, "filter")
        upcoming_days = max(0, _env_int(_k("UPCOMING_DAYS"), 30))

        # Periodic re-check catches the day rollover while the app stays open.
        sync_interval_seconds = _env_float(_k("SYNC_INTERVAL_SECONDS"), 300.0)
        sync_retry_delay_seconds = _env_float(_k("SYNC_RETRY_DELAY_SECONDS"), 30.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            sync_enabled=sync_enabled,
            account=account,
            data_dir=data_dir,
            db_path=db_path,
            retention_policy=retention_policy,
            upcoming_days=upcoming_days,
            sync_interval_seconds=sync_interval_seconds,
            sync_retry_delay_seconds=sync_retry_delay_seconds,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "CONSOLE_ENABLED"):
        object.__setattr__(SETTINGS, "console_enabled", bool(_config_local.CONSOLE_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "SYNC_ENABLED"):
        object.__setattr__(SETTINGS, "sync_enabled", bool(_config_local.SYNC_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "ACCOUNT"):
        object.__setattr__(SETTINGS, "account", str(_config_local.ACCOUNT or "").strip())  # type: ignore[misc]
    if getattr(_config_local, "RETENTION_POLICY", None) in RETENTION_POLICIES:
        object.__setattr__(SETTINGS, "retention_policy", _config_local.RETENTION_POLICY)  # type: ignore[misc]
except Exception:
    pass


def get_settings() -> Settings:
    return SETTINGS


# --------------------------------------------------------------------------------------
# Module-level constants.
# --------------------------------------------------------------------------------------

APP_NAME = SETTINGS.app_name
LOG_LEVEL = SETTINGS.log_level

CONSOLE_ENABLED = SETTINGS.console_enabled
SYNC_ENABLED = SETTINGS.sync_enabled

ACCOUNT = SETTINGS.account

DATA_DIR = SETTINGS.data_dir
DB_PATH = SETTINGS.db_path

RETENTION_POLICY = SETTINGS.retention_policy
UPCOMING_DAYS = SETTINGS.upcoming_days
