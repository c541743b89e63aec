"""Explicit handle over the three history tables and the stores built on them."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from app.schemas import DailyAggregate, Reading, Tag
from datastore.aggregates import AggregateStore, aggregate_key
from datastore.readings import Clock, ReadingStore, utc_now
from datastore.table import JsonTable
from datastore.tags import TagRegistry, tag_key
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


class Database:
    """Opens the tag, reading and aggregate tables and wires their stores.

    Components receive this handle (or one of its stores) at construction.
    Every table writes its file as rows change; ``close`` only creates the
    files of tables that were never written. Call it once at shutdown.
    """

    def __init__(
        self,
        tags_table: JsonTable[Tag],
        readings_table: JsonTable[Reading],
        aggregates_table: JsonTable[DailyAggregate],
        low_battery_voltage: float = 2.5,
        clock: Clock = utc_now,
    ) -> None:
        self.tags = TagRegistry(tags_table)
        self.readings = ReadingStore(
            readings_table, self.tags, low_battery_voltage=low_battery_voltage, clock=clock
        )
        self.aggregates = AggregateStore(aggregates_table, self.tags)
        self._tables = (tags_table, readings_table, aggregates_table)
        self.closed = False

    @classmethod
    def open(
        cls,
        tags_path: Optional[Path] = None,
        readings_path: Optional[Path] = None,
        aggregates_path: Optional[Path] = None,
        low_battery_voltage: float = 2.5,
        clock: Clock = utc_now,
    ) -> "Database":
        """Open (or create) the tables; ``None`` paths give in-memory tables."""
        database = cls(
            tags_table=JsonTable("tag", Tag, tags_path, unique_key=tag_key),
            readings_table=JsonTable("history", Reading, readings_path),
            aggregates_table=JsonTable(
                "history_aggregated", DailyAggregate, aggregates_path, unique_key=aggregate_key
            ),
            low_battery_voltage=low_battery_voltage,
            clock=clock,
        )
        logger.info(
            "Opened history database",
            extra={"row_count": len(database._tables[1])},
        )
        return database

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls.open(
            tags_path=_path(settings.tags_path),
            readings_path=_path(settings.readings_path),
            aggregates_path=_path(settings.aggregates_path),
            low_battery_voltage=settings.low_battery_voltage,
        )

    def close(self) -> None:
        if self.closed:
            return
        for table in self._tables:
            table.close()
        self.closed = True
        logger.info("Closed history database")


@lru_cache
def build_default_database() -> Database:
    return Database.from_settings(get_settings())
