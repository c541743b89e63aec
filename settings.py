from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_READINGS_PATH_ENV = "READINGS_TABLE_PATH"
_AGGREGATES_PATH_ENV = "AGGREGATES_TABLE_PATH"
_TAGS_PATH_ENV = "TAGS_TABLE_PATH"
_LOW_BATTERY_ENV = "LOW_BATTERY_VOLTAGE"
_RETENTION_DAYS_ENV = "RETENTION_DAYS"
_WORKER_COUNT_ENV = "AGGREGATION_WORKER_COUNT"
_TIMEZONE_ENV = "LOCAL_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    readings_path: Optional[str]
    aggregates_path: Optional[str]
    tags_path: Optional[str]
    low_battery_voltage: float
    retention_days: int
    aggregation_workers: int
    timezone: str
    log_level: str

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(default: str) -> str:
    value = os.getenv(_TIMEZONE_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        aggregates_path=_read_optional_env(_AGGREGATES_PATH_ENV, "./tmp/aggregates.json"),
        tags_path=_read_optional_env(_TAGS_PATH_ENV, "./tmp/tags.json"),
        low_battery_voltage=_read_positive_float(_LOW_BATTERY_ENV, 2.5),
        retention_days=_read_positive_int(_RETENTION_DAYS_ENV, 7),
        aggregation_workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        timezone=_read_timezone("UTC"),
        log_level=_read_log_level("INFO"),
    )
