# src/lockin/config.py

"""Settings for the console app, read from LOCKIN_* environment variables.

A local .env file is honored but never overrides the real environment.
Malformed values are ignored in favor of defaults, so a typo in .env cannot
stop the timer from starting.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .storage.models import STORAGE_KEY
from .timer.timer_models import DEFAULT_PRESETS, TimerPreset, parse_presets

ENV_PREFIX = "LOCKIN"

logger = logging.getLogger(__name__)

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """LOCKIN_<suffix>"""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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
class Settings:
    # ---- App ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    db_path: Path
    storage_key: str

    # ---- Timer ----
    heartbeat_seconds: float
    presets: tuple[TimerPreset, ...]

    # ---- Presentation ----
    timezone: str
    completed_preview: int

    def tzinfo(self) -> ZoneInfo | None:
        """Zone for analytics; None means the machine's local time."""
        name = (self.timezone or "").strip()
        if not name:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using local time.", name)
            return None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "lockin") or "lockin"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/lockin"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "lockin.sqlite3")
        storage_key = _env(_k("STORAGE_KEY"), STORAGE_KEY).strip() or STORAGE_KEY

        heartbeat_seconds = max(0.05, _env_float(_k("HEARTBEAT_SECONDS"), 1.0))
        presets = tuple(parse_presets(_env(_k("PRESETS"), ""))) or DEFAULT_PRESETS

        timezone = _env(_k("TIMEZONE"), "").strip()
        completed_preview = max(0, _env_int(_k("COMPLETED_PREVIEW"), 3))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            storage_key=storage_key,
            heartbeat_seconds=heartbeat_seconds,
            presets=presets,
            timezone=timezone,
            completed_preview=completed_preview,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
