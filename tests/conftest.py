from __future__ import annotations

import datetime as dt

import pytest

from datastore.database import Database

NOW = dt.datetime(2024, 6, 15, 12, 0, tzinfo=dt.timezone.utc)


def fixed_clock() -> dt.datetime:
    return NOW


def days_ago(days: float, hours: float = 0) -> dt.datetime:
    return NOW - dt.timedelta(days=days, hours=hours)


@pytest.fixture
def database() -> Database:
    return Database.open(clock=fixed_clock)


@pytest.fixture
def tag_id(database: Database) -> int:
    return database.tags.ensure_tag("11:22:33:44:55:66", name="Living room").id
