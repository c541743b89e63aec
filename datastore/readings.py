"""Append-only store of raw sensor readings."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from app.schemas import Reading, ReadingView
from datastore.tags import TagRegistry
from datastore.table import JsonTable
from errors import ValidationError
from models.records import ReadingInput, ReadingQuery

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def ensure_aware(value: dt.datetime) -> dt.datetime:
    """Interpret naive datetimes as UTC and normalise everything to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(float(value), 2)


def _check_bound(name: str, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    if value is None:
        return None
    if not isinstance(value, dt.datetime):
        raise ValidationError(f"{name} must be a datetime.")
    return ensure_aware(value)


class ReadingStore:
    """Persists readings and answers the read queries the tasks depend on."""

    def __init__(
        self,
        table: JsonTable[Reading],
        tags: TagRegistry,
        low_battery_voltage: float = 2.5,
        clock: Clock = utc_now,
    ) -> None:
        self.table = table
        self.tags = tags
        self.low_battery_voltage = low_battery_voltage
        self._clock = clock

    def save(self, reading: ReadingInput) -> int:
        """Validate, normalise and persist a reading; return its generated id."""
        if not reading.tag_id and not reading.external_id:
            raise ValidationError("Need either a tag id or an external id.")
        if not isinstance(reading.datetime, dt.datetime):
            raise ValidationError("Reading datetime is not a datetime.")

        tag_id = reading.tag_id
        if tag_id:
            if self.tags.get_tag(tag_id) is None:
                raise ValidationError(f"Unknown tag id {tag_id}.")
        else:
            tag_id = self.tags.ensure_tag(reading.external_id).id

        battery_low = bool(reading.battery_low)
        # Voltage, when present, wins over the explicit flag.
        if reading.voltage is not None:
            battery_low = reading.voltage < self.low_battery_voltage

        stored = self.table.insert(
            Reading(
                tag_id=tag_id,
                datetime=ensure_aware(reading.datetime),
                temperature=_round(reading.temperature),
                humidity=_round(reading.humidity),
                battery_low=battery_low,
            )
        )
        assert stored.id is not None
        return stored.id

    def query(self, filters: Optional[ReadingQuery] = None) -> list[ReadingView]:
        """Return readings newest first, joined with their tag names."""
        filters = filters or ReadingQuery()
        if filters.limit is not None and filters.limit <= 0:
            raise ValidationError("Limit must be a positive integer.")
        date_start = _check_bound("date_start", filters.date_start)
        date_end = _check_bound("date_end", filters.date_end)

        def matches(row: Reading) -> bool:
            if filters.tag_id and row.tag_id != filters.tag_id:
                return False
            if date_start is not None and row.datetime <= date_start:
                return False
            if date_end is not None and row.datetime >= date_end:
                return False
            return True

        rows = sorted(self.table.scan(matches), key=lambda row: row.datetime, reverse=True)
        if filters.limit is not None:
            rows = rows[: filters.limit]
        return self._join_tag_names(rows)

    def in_window(self, tag_id: int, start: dt.datetime, end: dt.datetime) -> list[Reading]:
        """Readings of one tag with ``start <= datetime < end``."""
        start = ensure_aware(start)
        end = ensure_aware(end)
        return self.table.scan(
            lambda row: row.tag_id == tag_id and start <= row.datetime < end
        )

    def latest_per_tag(self) -> list[ReadingView]:
        """Newest reading of every tag that has any, ordered by tag name."""
        latest: dict[int, Reading] = {}
        for row in self.table.scan():
            current = latest.get(row.tag_id)
            if current is None or row.datetime > current.datetime:
                latest[row.tag_id] = row
        views = self._join_tag_names(list(latest.values()))
        return sorted(views, key=lambda view: (view.tag_name or "", view.tag_id))

    def delete_older_than(self, cutoff: dt.datetime) -> int:
        """Delete readings strictly older than ``cutoff`` and return how many went."""
        if not isinstance(cutoff, dt.datetime):
            raise ValidationError("Cutoff must be a datetime.")
        cutoff = ensure_aware(cutoff)
        if cutoff > self._clock():
            raise ValidationError("Cutoff cannot be in the future.")
        removed = self.table.delete_where(lambda row: row.datetime < cutoff)
        logger.debug("Deleted readings", extra={"cutoff": cutoff.isoformat(), "row_count": removed})
        return removed

    def _join_tag_names(self, rows: list[Reading]) -> list[ReadingView]:
        names = {tag.id: tag.name for tag in self.tags.get_tags()}
        return [
            ReadingView(**row.model_dump(), tag_name=names.get(row.tag_id)) for row in rows
        ]
