"""Two handles on the same table files, as when a task process runs beside the server."""

from __future__ import annotations

import datetime as dt

import pytest

from app.schemas import DailyAggregate
from conftest import days_ago, fixed_clock
from datastore.database import Database
from errors import ConflictError
from models.records import ReadingInput
from services.aggregation import build_aggregation_task
from services.retention import RetentionTask


def _open(tmp_path) -> Database:
    return Database.open(
        tags_path=tmp_path / "tags.json",
        readings_path=tmp_path / "readings.json",
        aggregates_path=tmp_path / "aggregates.json",
        clock=fixed_clock,
    )


def _save(database: Database, tag_id: int, when: dt.datetime, temperature: float) -> None:
    database.readings.save(ReadingInput(tag_id=tag_id, datetime=when, temperature=temperature))


def test_aggregates_from_task_handle_survive_server_shutdown(tmp_path) -> None:
    server = _open(tmp_path)
    tag = server.tags.ensure_tag("AA")
    _save(server, tag.id, days_ago(1), 12.0)
    worker = _open(tmp_path)

    build_aggregation_task(worker, tz=dt.timezone.utc, workers=1, clock=fixed_clock).run()
    worker.close()

    assert len(server.aggregates.list()) == 1
    server.close()
    assert len(_open(tmp_path).aggregates.list()) == 1


def test_ingest_after_retention_keeps_old_readings_deleted(tmp_path) -> None:
    server = _open(tmp_path)
    tag = server.tags.ensure_tag("AA")
    _save(server, tag.id, days_ago(15), 1.0)
    _save(server, tag.id, days_ago(1), 2.0)
    worker = _open(tmp_path)

    RetentionTask(worker.readings, retention_days=7, clock=fixed_clock).run()
    _save(server, tag.id, days_ago(0, hours=1), 3.0)

    temperatures = [row.temperature for row in _open(tmp_path).readings.query()]
    assert temperatures == [3.0, 2.0]


def test_second_handle_hits_conflict_for_same_tag_and_day(tmp_path) -> None:
    first = _open(tmp_path)
    tag = first.tags.ensure_tag("AA")
    second = _open(tmp_path)
    day = dt.date(2024, 6, 14)

    first.aggregates.insert(DailyAggregate(tag_id=tag.id, date=day, temperature_min=1.0))
    with pytest.raises(ConflictError):
        second.aggregates.insert(DailyAggregate(tag_id=tag.id, date=day, temperature_min=2.0))

    [row] = _open(tmp_path).aggregates.list()
    assert row.temperature.min == 1.0


def test_tag_registered_by_one_handle_is_reused_by_another(tmp_path) -> None:
    first = _open(tmp_path)
    second = _open(tmp_path)

    created = first.tags.ensure_tag("AA", name="Cellar")
    again = second.tags.ensure_tag("AA")

    assert again.id == created.id
    assert again.name == "Cellar"
