# src/focus_timeline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .core.models import OriginalKind

ENV_PREFIX = "FOCUS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


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


@dataclass(frozen=True, slots=True)
class SourceTables:
    """Remote table names, one per source (plus the skip ledger)."""

    time_blocks: str = "time_blocks"
    meetings: str = "projects_meeting"
    todos: str = "personal_todos"
    skips: str = "focus_skipped_tasks"

    def for_kind(self, kind: OriginalKind) -> str:
        if kind is OriginalKind.TIME_BLOCK:
            return self.time_blocks
        if kind is OriginalKind.MEETING:
            return self.meetings
        return self.todos


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Remote store (Supabase / PostgREST) ----
    supabase_url: str
    supabase_key: str | None
    user_id: str | None

    http_connect_timeout_seconds: float
    http_read_timeout_seconds: float

    # ---- Sync tuning ----
    refresh_interval_seconds: float
    meeting_window_days: int

    tables: SourceTables = field(default_factory=SourceTables)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "focus") or "focus"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/focus"))

        supabase_url = (_first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default="") or "").strip().rstrip("/")
        supabase_key = _first_env(_k("SUPABASE_KEY"), "SUPABASE_KEY", default=None)
        user_id = (_first_env(_k("USER_ID"), default="") or "").strip() or None

        connect_timeout = _env_float(_k("HTTP_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("HTTP_READ_TIMEOUT_SECONDS"), 20.0)

        # Refresh rarely so background passes interfere less with local edits.
        refresh_interval = _env_float(_k("REFRESH_INTERVAL_SECONDS"), 300.0)
        meeting_window_days = _env_int(_k("MEETING_WINDOW_DAYS"), 7)

        tables = SourceTables(
            time_blocks=_env(_k("TIME_BLOCKS_TABLE"), "time_blocks"),
            meetings=_env(_k("MEETINGS_TABLE"), "projects_meeting"),
            todos=_env(_k("TODOS_TABLE"), "personal_todos"),
            skips=_env(_k("SKIPS_TABLE"), "focus_skipped_tasks"),
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            user_id=user_id,
            http_connect_timeout_seconds=connect_timeout,
            http_read_timeout_seconds=max(read_timeout, connect_timeout),
            refresh_interval_seconds=refresh_interval,
            meeting_window_days=meeting_window_days,
            tables=tables,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
