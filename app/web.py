from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.schemas import AlertInfo, Reading, ReadingQuery
from services.alerts import device_display_name, evaluate, format_value, status_for
from services.readings import ReadingService, build_default_service
from settings import get_settings


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["fmt"] = format_value
templates.env.globals["display_name"] = device_display_name

CHART_WIDTH = 600
CHART_HEIGHT = 200
CHART_SERIES = (
    ("nitrogen", "Nitrogen (ppm)", 500.0),
    ("phosphorus", "Phosphorus (ppm)", 200.0),
    ("ph", "pH", 14.0),
)


@dataclass
class DeviceCard:
    reading: Reading
    alert: AlertInfo
    status: str


@dataclass
class ChartSeries:
    key: str
    label: str
    points: str


def get_service() -> ReadingService:
    return build_default_service()


def _cards(readings: Iterable[Reading]) -> List[DeviceCard]:
    return [
        DeviceCard(reading=reading, alert=evaluate(reading), status=status_for(reading))
        for reading in readings
    ]


def _chart(readings: Sequence[Reading]) -> List[ChartSeries]:
    """Polyline point strings for each nutrient, oldest reading on the left."""
    ordered = sorted(readings, key=lambda reading: reading.timestamp)
    if not ordered:
        return []
    start = ordered[0].timestamp
    span = (ordered[-1].timestamp - start).total_seconds() or 1.0

    series: List[ChartSeries] = []
    for key, label, ceiling in CHART_SERIES:
        coords = []
        for reading in ordered:
            x = (reading.timestamp - start).total_seconds() / span * CHART_WIDTH
            y = CHART_HEIGHT - min(getattr(reading, key), ceiling) / ceiling * CHART_HEIGHT
            coords.append(f"{x:.1f},{y:.1f}")
        series.append(ChartSeries(key=key, label=label, points=" ".join(coords)))
    return series


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    service: ReadingService = Depends(get_service),
) -> HTMLResponse:
    cards = _cards(service.latest_by_device())
    recent = service.list_readings()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "stats": service.stats(),
            "cards": cards,
            "alerts": [card for card in cards if card.alert.triggered],
            "readings": recent,
            "chart": _chart(recent),
            "chart_width": CHART_WIDTH,
            "chart_height": CHART_HEIGHT,
            "refresh_seconds": get_settings().dashboard_refresh_seconds,
        },
    )


@router.get("/ui/devices/{device_id}", name="ui_device_detail", response_class=HTMLResponse)
async def ui_device_detail(
    request: Request,
    device_id: str,
    service: ReadingService = Depends(get_service),
) -> HTMLResponse:
    readings = service.list_readings(ReadingQuery(device_id=device_id))
    if not readings:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No readings for device {device_id} in the last 24 hours",
        )

    return templates.TemplateResponse(
        request,
        "ui/device.html",
        {
            "device_id": device_id,
            "cards": _cards(readings),
            "chart": _chart(readings),
            "chart_width": CHART_WIDTH,
            "chart_height": CHART_HEIGHT,
            "refresh_seconds": get_settings().dashboard_refresh_seconds,
        },
    )
