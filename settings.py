from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TIMEZONE_ENV = "REPORT_TIMEZONE"
_LOCALE_ENV = "REPORT_LOCALE"
_MAX_RANGE_ENV = "MAX_HOURLY_RANGE_DAYS"
_READINGS_NAME_ENV = "READINGS_STORE_NAME"
_READINGS_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_HOURLY_NAME_ENV = "HOURLY_STORE_NAME"
_HOURLY_PATH_ENV = "HOURLY_PERSISTENCE_PATH"
_JOB_ENABLED_ENV = "HOURLY_AGGREGATION_JOB_ENABLED"
_JOB_INTERVAL_ENV = "HOURLY_AGGREGATION_INTERVAL_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    report_timezone: str
    report_locale: str
    max_range_days: int
    readings_store_name: str
    readings_persistence_path: Optional[str]
    hourly_store_name: str
    hourly_persistence_path: Optional[str]
    job_enabled: bool
    job_interval_seconds: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate != "false"


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
        report_timezone=_read_str_env(_TIMEZONE_ENV, "America/Bogota"),
        report_locale=_read_str_env(_LOCALE_ENV, "es").lower(),
        max_range_days=_read_positive_int(_MAX_RANGE_ENV, 92),
        readings_store_name=_read_str_env(_READINGS_NAME_ENV, "sensor_data"),
        readings_persistence_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        hourly_store_name=_read_str_env(_HOURLY_NAME_ENV, "sensor_hourly_averages"),
        hourly_persistence_path=_read_optional_env(_HOURLY_PATH_ENV, "./tmp/hourly.json"),
        job_enabled=_read_flag(_JOB_ENABLED_ENV, True),
        job_interval_seconds=_read_positive_int(_JOB_INTERVAL_ENV, 300),
        log_level=_read_log_level("INFO"),
    )
