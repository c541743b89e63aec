"""Current status of every tag for dashboard consumption."""

from __future__ import annotations

import datetime as dt

from app.schemas import ReadingView, SensorSummary, TagStatus
from datastore.readings import ReadingStore
from services.calculator import Calculator

CURRENT_WINDOW = dt.timedelta(hours=12)
# Stretches the half-open window so the latest reading is part of it.
_INCLUDE_END = dt.timedelta(microseconds=1)


class StatusService:

    def __init__(self, readings: ReadingStore, calculator: Calculator) -> None:
        self.readings = readings
        self.calculator = calculator

    def current(self) -> list[TagStatus]:
        """Latest reading per tag with 12 hour min/max and trend per sensor."""
        return [self._status(reading) for reading in self.readings.latest_per_tag()]

    def _status(self, reading: ReadingView) -> TagStatus:
        end = reading.datetime + _INCLUDE_END
        start = reading.datetime - CURRENT_WINDOW
        return TagStatus(
            tag_id=reading.tag_id,
            tag_name=reading.tag_name,
            datetime=reading.datetime,
            battery_low=reading.battery_low,
            temperature=self._summary(reading, "temperature", start, end),
            humidity=self._summary(reading, "humidity", start, end),
        )

    def _summary(
        self, reading: ReadingView, sensor: str, start: dt.datetime, end: dt.datetime
    ) -> SensorSummary:
        return SensorSummary(
            current=getattr(reading, sensor),
            min=self.calculator.min_or_max("min", reading.tag_id, sensor, start, end),
            max=self.calculator.min_or_max("max", reading.tag_id, sensor, start, end),
            trend=self.calculator.trend(reading.tag_id, sensor),
        )
