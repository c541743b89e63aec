"""HTTP route definitions for the service."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from app.schemas import AggregateView, GatewayPayload, MessageResponse, ReadingView, TagStatus
from datastore.database import Database, build_default_database
from errors import ValidationError
from models.records import AggregateQuery, ReadingInput, ReadingQuery
from services.aggregation import build_aggregation_task
from services.calculator import Calculator
from services.retention import build_retention_task
from services.status import StatusService

router = APIRouter()


def get_database() -> Database:
    return build_default_database()


def _bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _from_epoch(timestamp: int) -> dt.datetime:
    try:
        return dt.datetime.fromtimestamp(timestamp, tz=dt.timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValidationError(f"Timestamp {timestamp} is out of range.") from exc


@router.post(
    "/history",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    summary="Store readings pushed by a Ruuvi gateway.",
)
async def save_history(
    payload: GatewayPayload,
    database: Database = Depends(get_database),
) -> MessageResponse | JSONResponse:
    tags = payload.data.tags if payload.data is not None else None
    # The gateway's setup wizard tests the connection with an empty tag map.
    if tags is not None and not tags:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "Connection working without tag data."},
        )
    if not tags:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid ruuvi-gateway payload",
        )

    try:
        entries = [
            ReadingInput(
                external_id=tag.id,
                datetime=_from_epoch(tag.timestamp),
                temperature=tag.temperature,
                humidity=tag.humidity,
                voltage=tag.voltage,
            )
            for tag in tags.values()
        ]
        for entry in entries:
            database.readings.save(entry)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return MessageResponse(message="Data inserted successfully")


@router.get(
    "/history",
    response_model=List[ReadingView],
    summary="List raw readings, newest first.",
)
async def get_history(
    tag_id: Optional[int] = Query(None),
    date_start: Optional[dt.datetime] = Query(None, description="Exclusive lower bound."),
    date_end: Optional[dt.datetime] = Query(None, description="Exclusive upper bound."),
    limit: Optional[int] = Query(None, ge=1),
    database: Database = Depends(get_database),
) -> List[ReadingView]:
    filters = ReadingQuery(tag_id=tag_id, date_start=date_start, date_end=date_end, limit=limit)
    try:
        return database.readings.query(filters)
    except ValidationError as exc:
        raise _bad_request(exc) from exc


@router.get(
    "/current",
    response_model=List[TagStatus],
    summary="Latest reading per tag with 12 hour extremes and trend.",
)
async def get_current(database: Database = Depends(get_database)) -> List[TagStatus]:
    service = StatusService(database.readings, Calculator(database.readings))
    return service.current()


@router.get(
    "/history_aggregated",
    response_model=List[AggregateView],
    summary="List daily aggregates, newest date first.",
)
async def get_history_aggregated(
    tag_id: Optional[int] = Query(None, description="Tag id to filter by."),
    date: Optional[dt.date] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    database: Database = Depends(get_database),
) -> List[AggregateView]:
    try:
        return database.aggregates.list(AggregateQuery(tag_id=tag_id, date=date, limit=limit))
    except ValidationError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/tasks/aggregate",
    response_model=MessageResponse,
    summary="Roll up every complete day that lacks a daily aggregate.",
)
def run_aggregation(database: Database = Depends(get_database)) -> MessageResponse:
    build_aggregation_task(database).run()
    return MessageResponse(message="Aggregation finished.")


@router.post(
    "/tasks/clean",
    response_model=MessageResponse,
    summary="Delete raw readings older than the retention horizon.",
)
def run_retention(
    days: Optional[int] = Query(None, ge=1, description="Retention horizon in days."),
    database: Database = Depends(get_database),
) -> MessageResponse:
    build_retention_task(database, retention_days=days).run()
    return MessageResponse(message="Cleanup finished.")


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
