"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .services.periods import LocalCalendar

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Configuration read from the environment (and ``.env``)."""

    APP_NAME = "streakwise"
    DB_FILENAME = "streakwise.db"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("STREAKWISE_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("STREAKWISE_DATABASE_URL", self._build_sqlite_url())
        self.TIMEZONE = os.getenv("STREAKWISE_TIMEZONE") or "UTC"
        self.FIRST_WEEKDAY = _env_int("STREAKWISE_FIRST_WEEKDAY", 0)
        self.FOLLOW_UP_MINUTES = _env_int("STREAKWISE_FOLLOW_UP_MINUTES", 30)
        self.STREAK_MAX_PERIODS = _env_int("STREAKWISE_STREAK_MAX_PERIODS", 3660)

        if not 0 <= self.FIRST_WEEKDAY <= 6:
            raise ValueError("STREAKWISE_FIRST_WEEKDAY must be between 0 (Monday) and 6 (Sunday).")
        if self.FOLLOW_UP_MINUTES <= 0:
            raise ValueError("STREAKWISE_FOLLOW_UP_MINUTES must be positive.")
        self.tzinfo()  # fail fast on unknown zone names

    def _resolve_data_dir(self) -> Path:
        """Return the directory holding the database file and logs."""

        path = Path(os.getenv("STREAKWISE_DATA_DIR", "instance")).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def tzinfo(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.TIMEZONE!r}") from exc

    def calendar(self) -> LocalCalendar:
        """Build the local calendar every computation is pinned to."""

        return LocalCalendar(tz=self.tzinfo(), first_weekday=self.FIRST_WEEKDAY)

    @property
    def follow_up_delay(self) -> timedelta:
        return timedelta(minutes=self.FOLLOW_UP_MINUTES)

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False
