"""Domain inputs and query structs shared across services."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

SENSORS = ("temperature", "humidity")
EXTREMA = ("min", "max")


@dataclass(slots=True)
class ReadingInput:
    """A sensor sample handed over by ingestion, before validation."""

    datetime: dt.datetime
    tag_id: Optional[int] = None
    external_id: Optional[str] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    battery_low: bool = False


@dataclass(frozen=True, slots=True)
class ReadingQuery:
    """Filters for reading lookups.

    ``date_start`` and ``date_end`` are exclusive bounds and may be given
    independently. ``limit`` is applied after newest-first ordering.
    """

    tag_id: Optional[int] = None
    date_start: Optional[dt.datetime] = None
    date_end: Optional[dt.datetime] = None
    limit: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AggregateQuery:
    """Filters for daily aggregate lookups; newest date first."""

    tag_id: Optional[int] = None
    date: Optional[dt.date] = None
    limit: Optional[int] = None
