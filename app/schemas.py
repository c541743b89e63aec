"""Pydantic schemas for persisted rows and the HTTP API layer."""

from __future__ import annotations

import datetime as dt
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Tag(BaseModel):
    """A physical sensor tag known to the registry."""

    id: Optional[int] = None
    external_id: str = Field(..., max_length=32, description="Hardware MAC address.")
    name: Optional[str] = Field(default=None, max_length=64)


class Reading(BaseModel):
    """A raw sensor sample as stored in the readings table."""

    id: Optional[int] = None
    tag_id: int
    datetime: dt.datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    battery_low: bool = False


class DailyAggregate(BaseModel):
    """Min/max rollup of one tag's readings for one calendar day."""

    id: Optional[int] = None
    tag_id: int
    date: dt.date
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    humidity_min: Optional[float] = None
    humidity_max: Optional[float] = None

    def is_empty(self) -> bool:
        return (
            self.temperature_min is None
            and self.temperature_max is None
            and self.humidity_min is None
            and self.humidity_max is None
        )


class ReadingView(Reading):
    """Reading joined with the display name of its tag."""

    tag_name: Optional[str] = None


class SensorSummary(BaseModel):
    """Extremes of a single sensor, optionally with current value and trend."""

    current: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    trend: Optional[int] = Field(default=None, ge=-1, le=1)


class AggregateView(BaseModel):
    """Daily aggregate joined with the tag name and grouped per sensor."""

    id: int
    tag_id: int
    tag_name: Optional[str] = None
    date: dt.date
    temperature: SensorSummary
    humidity: SensorSummary


class TagStatus(BaseModel):
    """Latest reading of a tag with 12 hour extremes and trend."""

    tag_id: int
    tag_name: Optional[str] = None
    datetime: dt.datetime
    battery_low: bool = False
    temperature: SensorSummary
    humidity: SensorSummary


class GatewayTag(BaseModel):
    """One tag entry of a Ruuvi gateway push."""

    id: str
    timestamp: int = Field(..., description="Seconds since the Unix epoch.")
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None


class GatewayData(BaseModel):
    tags: Optional[Dict[str, GatewayTag]] = None


class GatewayPayload(BaseModel):
    """Body posted by the Ruuvi gateway to the history endpoint."""

    data: Optional[GatewayData] = None


class MessageResponse(BaseModel):
    message: str
