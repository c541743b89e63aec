"""Store of daily min/max rollups, unique per tag and date."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from app.schemas import AggregateView, DailyAggregate, SensorSummary
from datastore.tags import TagRegistry
from datastore.table import JsonTable
from errors import ValidationError
from models.records import AggregateQuery


def aggregate_key(aggregate: DailyAggregate) -> tuple[int, dt.date]:
    return (aggregate.tag_id, aggregate.date)


def _is_calendar_day(value: object) -> bool:
    return isinstance(value, dt.date) and not isinstance(value, dt.datetime)


class AggregateStore:

    def __init__(self, table: JsonTable[DailyAggregate], tags: TagRegistry) -> None:
        self.table = table
        self.tags = tags

    def insert(self, aggregate: DailyAggregate) -> int:
        """Persist a rollup; ConflictError if the tag already has one for that date."""
        if not aggregate.tag_id:
            raise ValidationError("Missing tag id.")
        if not _is_calendar_day(aggregate.date):
            raise ValidationError("Invalid date provided.")
        stored = self.table.insert(aggregate)
        assert stored.id is not None
        return stored.id

    def exists(self, date: dt.date, tag_id: Optional[int] = None) -> bool:
        if not _is_calendar_day(date):
            raise ValidationError("Invalid date provided.")
        if tag_id:
            return self.table.get_by_key((tag_id, date)) is not None
        return bool(self.table.scan(lambda row: row.date == date))

    def tag_ids_for(self, date: dt.date) -> set[int]:
        return {row.tag_id for row in self.table.scan(lambda row: row.date == date)}

    def list(self, filters: Optional[AggregateQuery] = None) -> list[AggregateView]:
        filters = filters or AggregateQuery()
        if filters.limit is not None and filters.limit <= 0:
            raise ValidationError("Limit must be a positive integer.")
        if filters.date is not None and not _is_calendar_day(filters.date):
            raise ValidationError("Invalid date provided.")

        def matches(row: DailyAggregate) -> bool:
            if filters.tag_id and row.tag_id != filters.tag_id:
                return False
            if filters.date is not None and row.date != filters.date:
                return False
            return True

        rows = sorted(
            self.table.scan(matches), key=lambda row: (row.date, row.id or 0), reverse=True
        )
        if filters.limit is not None:
            rows = rows[: filters.limit]

        names = {tag.id: tag.name for tag in self.tags.get_tags()}
        return [
            AggregateView(
                id=row.id or 0,
                tag_id=row.tag_id,
                tag_name=names.get(row.tag_id),
                date=row.date,
                temperature=SensorSummary(min=row.temperature_min, max=row.temperature_max),
                humidity=SensorSummary(min=row.humidity_min, max=row.humidity_max),
            )
            for row in rows
        ]
