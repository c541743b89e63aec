"""Extremum and trend calculations over stored readings."""

from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional, Sequence

from app.schemas import Reading
from datastore.readings import ReadingStore, ensure_aware
from errors import ValidationError
from models.records import EXTREMA, SENSORS, ReadingQuery

TREND_SAMPLES = 3
TREND_STRIDE = 2
# Newest readings needed to sample with the full stride.
TREND_LOOKBACK = (TREND_SAMPLES - 1) * TREND_STRIDE + 1


def _check_sensor(sensor: Optional[str]) -> str:
    if not sensor:
        raise ValidationError("Missing sensor name.")
    if sensor not in SENSORS:
        raise ValidationError(f"Not a valid sensor name: {sensor}")
    return sensor


def extremum(values: Iterable[Optional[float]], kind: str) -> Optional[float]:
    """Smallest or largest non-missing value, or None when there is none."""
    result: Optional[float] = None
    for value in values:
        if value is None:
            continue
        if result is None:
            result = value
        elif kind == "min" and value < result:
            result = value
        elif kind == "max" and value > result:
            result = value
    return result


def trend_samples(values: Sequence[Optional[float]]) -> list[Optional[float]]:
    """Pick three samples from readings ordered newest first.

    Every second reading is used once enough history exists, which spreads
    the samples over a longer stretch; shorter histories use consecutive
    readings. Fewer than three readings give no samples.
    """
    if len(values) < TREND_SAMPLES:
        return []
    stride = TREND_STRIDE if len(values) >= TREND_LOOKBACK else 1
    return list(values[: stride * (TREND_SAMPLES - 1) + 1 : stride])


def trend_direction(values: Sequence[Optional[float]]) -> int:
    """Monotonicity of three samples ordered newest first.

    Values are rounded to one decimal so sensor jitter does not register.
    Anything other than a strictly rising or falling run is flat.
    """
    if len(values) < TREND_SAMPLES or any(value is None for value in values):
        return 0
    newest, middle, oldest = (round(value, 1) for value in values[:TREND_SAMPLES])
    if newest > middle > oldest:
        return 1
    if newest < middle < oldest:
        return -1
    return 0


class Calculator:
    """Read-only calculations backed by the reading store.

    Windows are half-open: a reading at ``start`` counts, one at ``end`` does not.
    """

    def __init__(self, readings: ReadingStore) -> None:
        self.readings = readings

    def min_or_max(
        self,
        kind: str,
        tag_id: Optional[int],
        sensor: Optional[str],
        start: Optional[dt.datetime],
        end: Optional[dt.datetime],
    ) -> Optional[float]:
        if kind not in EXTREMA:
            raise ValidationError("Type needs to be min or max.")
        if start is None or end is None:
            raise ValidationError("Date range must contain start and end date time.")
        if not isinstance(start, dt.datetime) or not isinstance(end, dt.datetime):
            raise ValidationError("Date range bounds must be datetimes.")
        start = ensure_aware(start)
        end = ensure_aware(end)
        if start > end:
            raise ValidationError("Start date cannot be after end date.")
        if not tag_id:
            raise ValidationError("Missing tag ID.")
        _check_sensor(sensor)

        rows: list[Reading] = self.readings.in_window(tag_id, start, end)
        return extremum((getattr(row, sensor) for row in rows), kind)

    def trend(self, tag_id: Optional[int], sensor: Optional[str]) -> int:
        """+1 rising, -1 falling, 0 flat or fewer than three readings."""
        if not tag_id:
            raise ValidationError("Missing tag ID.")
        _check_sensor(sensor)

        latest = self.readings.query(ReadingQuery(tag_id=tag_id, limit=TREND_LOOKBACK))
        return trend_direction(trend_samples([getattr(row, sensor) for row in latest]))
