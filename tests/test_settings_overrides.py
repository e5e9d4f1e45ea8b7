from __future__ import annotations

from typing import Iterable

from datastore.hourly import build_default_hourly_store
from services.readings import build_default_reading_service
from services.reports import build_default_report_service
from settings import get_settings
from storage.readings import build_default_reading_store


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


CACHES = (
    get_settings,
    build_default_reading_store,
    build_default_hourly_store,
    build_default_report_service,
    build_default_reading_service,
)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    readings_path = tmp_path / "readings.json"
    hourly_path = tmp_path / "hourly.json"

    monkeypatch.setenv("REPORT_TIMEZONE", "Europe/Madrid")
    monkeypatch.setenv("REPORT_LOCALE", "EN")
    monkeypatch.setenv("MAX_HOURLY_RANGE_DAYS", "31")
    monkeypatch.setenv("READINGS_STORE_NAME", "custom-readings")
    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(readings_path))
    monkeypatch.setenv("HOURLY_STORE_NAME", "custom-hourly")
    monkeypatch.setenv("HOURLY_PERSISTENCE_PATH", str(hourly_path))
    monkeypatch.setenv("HOURLY_AGGREGATION_JOB_ENABLED", "false")
    monkeypatch.setenv("HOURLY_AGGREGATION_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    _clear_caches(CACHES)

    try:
        settings = get_settings()
        reports = build_default_report_service()
        readings = build_default_reading_service()

        assert settings.job_enabled is False
        assert settings.job_interval_seconds == 60
        assert settings.log_level == "DEBUG"
        assert reports.readings.name == "custom-readings"
        assert reports.readings.persistence_path == readings_path
        assert reports.hourly.name == "custom-hourly"
        assert reports.hourly.persistence_path == hourly_path
        assert reports.report_zone.key == "Europe/Madrid"
        assert reports.max_range_days == 31
        assert reports.locale == "en"
        assert readings.store is reports.readings
    finally:
        _clear_caches(CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("MAX_HOURLY_RANGE_DAYS", "-3")
    monkeypatch.setenv("HOURLY_AGGREGATION_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("REPORT_TIMEZONE", "   ")
    monkeypatch.setenv("HOURLY_AGGREGATION_JOB_ENABLED", "no")
    get_settings.cache_clear()

    try:
        settings = get_settings()

        assert settings.max_range_days == 92
        assert settings.job_interval_seconds == 300
        assert settings.report_timezone == "America/Bogota"
        assert settings.job_enabled is True
    finally:
        get_settings.cache_clear()
