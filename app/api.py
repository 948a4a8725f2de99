"""HTTP route definitions for the service."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import DeviceSummary, Reading, ReadingStats
from services.errors import NotFoundError, PersistenceError, ValidationError
from services.readings import ReadingService, build_default_service
from services.timestamps import utc_now
from services.validation import validate_query, validate_submission

API_VERSION = "1.0.0"
_STARTED_AT = time.monotonic()

router = APIRouter()
readings_router = APIRouter(prefix="/api/readings", tags=["readings"])


def get_service() -> ReadingService:
    return build_default_service()


def _query_params(
    device_id: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    limit: Optional[str],
) -> Dict[str, Any]:
    return {
        "deviceId": device_id,
        "startDate": start_date,
        "endDate": end_date,
        "limit": limit,
    }


def _bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_detail())


@readings_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=Reading,
    summary="Submit a new sensor reading.",
)
async def create_reading(
    payload: Any = Body(
        ...,
        examples=[
            {
                "deviceId": "GH001",
                "timestamp": "2024-03-15T10:30:00Z",
                "nitrogen": 150.5,
                "phosphorus": 45.2,
                "ph": 6.5,
            }
        ],
    ),
    service: ReadingService = Depends(get_service),
) -> Reading:
    try:
        new_reading = validate_submission(payload)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    try:
        return service.create(new_reading)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@readings_router.get(
    "",
    response_model=List[Reading],
    summary="List readings (last 24 hours by default), most recent first.",
)
async def list_readings(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO 8601 lower bound."),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO 8601 upper bound."),
    limit: Optional[str] = Query(None, description="Maximum rows to return (1-1000)."),
    service: ReadingService = Depends(get_service),
) -> List[Reading]:
    try:
        query = validate_query(_query_params(device_id, start_date, end_date, limit))
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return service.list_readings(query)


@readings_router.get(
    "/latest",
    response_model=List[Reading],
    summary="Most recent reading for each device.",
)
async def latest_readings(service: ReadingService = Depends(get_service)) -> List[Reading]:
    return service.latest_by_device()


@readings_router.get(
    "/stats",
    response_model=ReadingStats,
    summary="Total readings and distinct device count.",
)
async def reading_stats(service: ReadingService = Depends(get_service)) -> ReadingStats:
    return service.stats()


@readings_router.get(
    "/summary",
    response_model=List[DeviceSummary],
    summary="Per-device nutrient aggregates over the filtered window.",
)
async def reading_summary(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    service: ReadingService = Depends(get_service),
) -> List[DeviceSummary]:
    try:
        query = validate_query(_query_params(device_id, start_date, end_date, None))
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return service.device_summaries(query)


@readings_router.get(
    "/{reading_id}",
    response_model=Reading,
    summary="Fetch a single reading by id.",
)
async def get_reading(
    reading_id: str,
    service: ReadingService = Depends(get_service),
) -> Reading:
    try:
        return service.find_by_id(reading_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": utc_now().isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "version": API_VERSION,
    }


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
