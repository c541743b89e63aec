from __future__ import annotations

from typing import Iterable

from datastore.database import build_default_database
from services.aggregation import build_aggregation_task
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    readings_path = tmp_path / "readings.json"

    monkeypatch.setenv("READINGS_TABLE_PATH", str(readings_path))
    monkeypatch.setenv("AGGREGATES_TABLE_PATH", "")
    monkeypatch.setenv("TAGS_TABLE_PATH", str(tmp_path / "tags.json"))
    monkeypatch.setenv("LOW_BATTERY_VOLTAGE", "2.8")
    monkeypatch.setenv("AGGREGATION_WORKER_COUNT", "2")
    monkeypatch.setenv("LOCAL_TIMEZONE", "Europe/Helsinki")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_database)
    _clear_caches(caches)

    try:
        settings = get_settings()
        database = build_default_database()
        task = build_aggregation_task(database)

        assert settings.log_level == "DEBUG"
        assert settings.aggregates_path is None
        assert database.readings.table.persistence_path == readings_path
        assert database.aggregates.table.persistence_path is None
        assert database.readings.low_battery_voltage == 2.8
        assert task.workers == 2
        assert str(task.tz) == "Europe/Helsinki"
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("RETENTION_DAYS", "-3")
    monkeypatch.setenv("AGGREGATION_WORKER_COUNT", "many")
    monkeypatch.setenv("LOW_BATTERY_VOLTAGE", "")
    monkeypatch.setenv("LOCAL_TIMEZONE", "Mars/Olympus_Mons")

    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.retention_days == 7
        assert settings.aggregation_workers == 4
        assert settings.low_battery_voltage == 2.5
        assert settings.timezone == "UTC"
    finally:
        get_settings.cache_clear()
