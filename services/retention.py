"""Housekeeping for raw readings past the retention horizon."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from datastore.database import Database
from datastore.readings import Clock, ReadingStore, utc_now
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class RetentionTask:
    """Deletes readings older than ``retention_days``; aggregates are left alone."""

    def __init__(
        self,
        readings: ReadingStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = utc_now,
    ) -> None:
        if retention_days <= 0:
            raise ValueError("Retention horizon must be a positive number of days.")
        self.readings = readings
        self.retention_days = retention_days
        self._clock = clock

    def run(self) -> bool:
        cutoff = self._clock() - dt.timedelta(days=self.retention_days)
        logger.info(
            "Cleaning readings older than horizon",
            extra={"cutoff": cutoff.isoformat(), "retention_days": self.retention_days},
        )
        removed = self.readings.delete_older_than(cutoff)
        logger.info("Deleted old readings", extra={"row_count": removed})
        return True


def build_retention_task(
    database: Database,
    retention_days: Optional[int] = None,
    clock: Clock = utc_now,
) -> RetentionTask:
    days = retention_days or get_settings().retention_days
    return RetentionTask(database.readings, retention_days=days, clock=clock)
