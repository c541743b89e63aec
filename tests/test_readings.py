"""Tests for saving, querying and deleting raw readings."""

from __future__ import annotations

import datetime as dt

import pytest

from conftest import NOW, days_ago
from datastore.database import Database
from errors import ValidationError
from models.records import ReadingInput, ReadingQuery


def _save(database: Database, tag_id: int, when: dt.datetime, **values) -> int:
    values.setdefault("temperature", 20.0)
    values.setdefault("humidity", 55.0)
    return database.readings.save(ReadingInput(tag_id=tag_id, datetime=when, **values))


def test_save_returns_generated_id(database: Database, tag_id: int) -> None:
    first = _save(database, tag_id, NOW)
    second = _save(database, tag_id, NOW)

    assert isinstance(first, int) and first > 0
    assert second > first


def test_save_requires_tag_reference(database: Database) -> None:
    with pytest.raises(ValidationError, match="tag id or an external id"):
        database.readings.save(ReadingInput(datetime=NOW, temperature=20.5))


def test_save_rejects_non_datetime(database: Database, tag_id: int) -> None:
    with pytest.raises(ValidationError, match="not a datetime"):
        database.readings.save(ReadingInput(tag_id=tag_id, datetime="2024-01-01"))  # type: ignore[arg-type]


def test_save_rejects_unknown_tag(database: Database) -> None:
    with pytest.raises(ValidationError, match="Unknown tag id"):
        database.readings.save(ReadingInput(tag_id=42, datetime=NOW))


def test_save_with_external_id_registers_tag(database: Database) -> None:
    database.readings.save(
        ReadingInput(external_id="C8:9B:06:CC:8C:20", datetime=NOW, temperature=3.0)
    )

    tag = database.tags.get_tag_by_external_id("C8:9B:06:CC:8C:20")
    assert tag is not None
    rows = database.readings.query(ReadingQuery(tag_id=tag.id))
    assert [row.temperature for row in rows] == [3.0]


def test_save_rounds_to_two_decimals(database: Database, tag_id: int) -> None:
    _save(database, tag_id, NOW, temperature=20.123456, humidity=55.987654)

    [row] = database.readings.query(ReadingQuery(tag_id=tag_id))

    assert row.temperature == 20.12
    assert row.humidity == 55.99


def test_voltage_overrides_battery_flag(database: Database, tag_id: int) -> None:
    _save(database, tag_id, NOW, voltage=2.6, battery_low=True)
    _save(database, tag_id, days_ago(1), voltage=2.4, battery_low=False)
    _save(database, tag_id, days_ago(2), battery_low=True)

    rows = database.readings.query(ReadingQuery(tag_id=tag_id))

    assert [row.battery_low for row in rows] == [False, True, True]


def test_low_battery_threshold_is_configurable(tag_id: int, database: Database) -> None:
    database.readings.low_battery_voltage = 3.0
    _save(database, tag_id, NOW, voltage=2.9)

    [row] = database.readings.query()

    assert row.battery_low is True


def test_naive_datetimes_are_stored_as_utc(database: Database, tag_id: int) -> None:
    _save(database, tag_id, dt.datetime(2024, 6, 14, 8, 30))

    [row] = database.readings.query()

    assert row.datetime == dt.datetime(2024, 6, 14, 8, 30, tzinfo=dt.timezone.utc)


def test_query_orders_newest_first_and_joins_tag_name(database: Database, tag_id: int) -> None:
    _save(database, tag_id, days_ago(2), temperature=15.0)
    _save(database, tag_id, days_ago(1), temperature=20.0)
    _save(database, tag_id, days_ago(3), temperature=10.0)

    rows = database.readings.query()

    assert [row.temperature for row in rows] == [20.0, 15.0, 10.0]
    assert all(row.tag_name == "Living room" for row in rows)


def test_query_filters_by_tag(database: Database, tag_id: int) -> None:
    other = database.tags.ensure_tag("22:33:44:55:66:77").id
    _save(database, tag_id, NOW, temperature=15.0)
    _save(database, other, NOW, temperature=25.0)

    rows = database.readings.query(ReadingQuery(tag_id=tag_id))

    assert [row.tag_id for row in rows] == [tag_id]


def test_query_date_bounds_are_exclusive(database: Database, tag_id: int) -> None:
    start, end = days_ago(3), days_ago(1)
    for when in (days_ago(4), start, days_ago(2), end, NOW):
        _save(database, tag_id, when)

    rows = database.readings.query(ReadingQuery(date_start=start, date_end=end))

    assert [row.datetime for row in rows] == [days_ago(2)]


def test_query_accepts_a_single_bound(database: Database, tag_id: int) -> None:
    _save(database, tag_id, days_ago(2))
    _save(database, tag_id, NOW)

    rows = database.readings.query(ReadingQuery(date_end=days_ago(1)))

    assert [row.datetime for row in rows] == [days_ago(2)]


def test_query_respects_limit(database: Database, tag_id: int) -> None:
    for days in range(5):
        _save(database, tag_id, days_ago(days))

    rows = database.readings.query(ReadingQuery(tag_id=tag_id, limit=2))

    assert [row.datetime for row in rows] == [NOW, days_ago(1)]


def test_query_rejects_non_positive_limit(database: Database) -> None:
    with pytest.raises(ValidationError):
        database.readings.query(ReadingQuery(limit=0))


def test_latest_per_tag_orders_by_name(database: Database) -> None:
    attic = database.tags.ensure_tag("F7:89:9C:1C:39:A7", name="Attic").id
    balcony = database.tags.ensure_tag("C8:9B:06:CC:8C:20", name="Balcony").id
    _save(database, balcony, days_ago(1), temperature=1.0)
    _save(database, balcony, NOW, temperature=2.0)
    _save(database, attic, days_ago(2), temperature=30.0)

    latest = database.readings.latest_per_tag()

    assert [(row.tag_name, row.temperature) for row in latest] == [("Attic", 30.0), ("Balcony", 2.0)]


def test_delete_older_than_removes_only_older_rows(database: Database, tag_id: int) -> None:
    _save(database, tag_id, days_ago(5))
    _save(database, tag_id, days_ago(2))
    _save(database, tag_id, days_ago(1))

    removed = database.readings.delete_older_than(days_ago(2))

    assert removed == 1
    remaining = database.readings.query(ReadingQuery(tag_id=tag_id))
    assert [row.datetime for row in remaining] == [days_ago(1), days_ago(2)]


def test_delete_older_than_rejects_non_datetime(database: Database) -> None:
    with pytest.raises(ValidationError, match="Cutoff must be a datetime"):
        database.readings.delete_older_than("2024-01-01")  # type: ignore[arg-type]


def test_delete_older_than_rejects_future_cutoff(database: Database) -> None:
    with pytest.raises(ValidationError, match="future"):
        database.readings.delete_older_than(NOW + dt.timedelta(days=1))


def test_delete_older_than_with_nothing_to_delete(database: Database) -> None:
    assert database.readings.delete_older_than(days_ago(7)) == 0
