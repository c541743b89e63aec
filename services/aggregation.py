"""Daily rollup of raw readings into per-tag min/max aggregates."""

from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from app.schemas import DailyAggregate
from datastore.aggregates import AggregateStore
from datastore.database import Database
from datastore.readings import Clock, ReadingStore, utc_now
from datastore.tags import TagRegistry
from errors import ConflictError, StorageError
from models.records import ReadingQuery
from services.calculator import Calculator
from settings import get_settings

logger = logging.getLogger(__name__)

Unit = tuple[int, dt.date]


def start_of_day(moment: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    local = moment.astimezone(tz)
    return dt.datetime.combine(local.date(), dt.time(), tzinfo=tz)


def day_window(day: dt.date, tz: dt.tzinfo) -> tuple[dt.datetime, dt.datetime]:
    """``[day 00:00, day+1 00:00)`` in the local zone."""
    start = dt.datetime.combine(day, dt.time(), tzinfo=tz)
    end = dt.datetime.combine(day + dt.timedelta(days=1), dt.time(), tzinfo=tz)
    return start, end


class AggregationTask:
    """Rolls up every complete day that still lacks aggregates.

    The current local day is never a candidate. A day counts as done for a
    tag once that tag has a row for it, so a run interrupted halfway is
    completed by the next run without touching the rows already written.
    """

    def __init__(
        self,
        readings: ReadingStore,
        aggregates: AggregateStore,
        tags: TagRegistry,
        calculator: Calculator,
        tz: dt.tzinfo = dt.timezone.utc,
        workers: int = 4,
        clock: Clock = utc_now,
    ) -> None:
        self.readings = readings
        self.aggregates = aggregates
        self.tags = tags
        self.calculator = calculator
        self.tz = tz
        self.workers = workers
        self._clock = clock

    def run(self) -> bool:
        boundary = start_of_day(self._clock(), self.tz)
        history = self.readings.query(ReadingQuery(date_end=boundary))

        tags_by_day: dict[dt.date, set[int]] = {}
        for reading in history:
            day = reading.datetime.astimezone(self.tz).date()
            tags_by_day.setdefault(day, set()).add(reading.tag_id)

        pending: list[dt.date] = []
        for day in sorted(tags_by_day):
            missing = tags_by_day[day] - self.aggregates.tag_ids_for(day)
            if missing:
                pending.append(day)

        logger.info(
            "Aggregating complete days",
            extra={"day_count": len(pending), "row_count": len(history)},
        )
        if pending:
            self._run_units(unit for day in pending for unit in self._units_for(day))
        return True

    def is_date_aggregated(self, day: dt.date, tag_id: Optional[int] = None) -> bool:
        """Whether ``day`` has a row for ``tag_id``, or for any tag when omitted."""
        return self.aggregates.exists(day, tag_id=tag_id)

    def aggregate_day(self, day: dt.date) -> int:
        """Roll up ``day`` for every known tag without a row; return rows created."""
        logger.info("Aggregating day", extra={"date": day.isoformat()})
        return self._run_units(self._units_for(day))

    def _units_for(self, day: dt.date) -> list[Unit]:
        done = self.aggregates.tag_ids_for(day)
        return [(tag.id, day) for tag in self.tags.get_tags() if tag.id not in done]

    def _run_units(self, units: Iterable[Unit]) -> int:
        created = 0
        failure: Optional[StorageError] = None
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._aggregate_unit, tag_id, day) for tag_id, day in units]
            for future in futures:
                try:
                    if future.result() is not None:
                        created += 1
                except StorageError as exc:
                    failure = failure or exc
        if failure is not None:
            raise failure
        return created

    def _aggregate_unit(self, tag_id: int, day: dt.date) -> Optional[int]:
        start, end = day_window(day, self.tz)
        aggregate = DailyAggregate(
            tag_id=tag_id,
            date=day,
            temperature_min=self.calculator.min_or_max("min", tag_id, "temperature", start, end),
            temperature_max=self.calculator.min_or_max("max", tag_id, "temperature", start, end),
            humidity_min=self.calculator.min_or_max("min", tag_id, "humidity", start, end),
            humidity_max=self.calculator.min_or_max("max", tag_id, "humidity", start, end),
        )
        if aggregate.is_empty():
            return None

        try:
            aggregate_id = self.aggregates.insert(aggregate)
        except ConflictError as exc:
            logger.warning(
                "Skipping aggregate",
                extra={"tag_id": tag_id, "date": day.isoformat(), "reason": str(exc)},
            )
            return None

        logger.debug("Stored aggregate", extra={"tag_id": tag_id, "date": day.isoformat()})
        return aggregate_id


def build_aggregation_task(
    database: Database,
    tz: Optional[dt.tzinfo] = None,
    workers: Optional[int] = None,
    clock: Clock = utc_now,
) -> AggregationTask:
    settings = get_settings()
    return AggregationTask(
        readings=database.readings,
        aggregates=database.aggregates,
        tags=database.tags,
        calculator=Calculator(database.readings),
        tz=tz or ZoneInfo(settings.timezone),
        workers=workers or settings.aggregation_workers,
        clock=clock,
    )
