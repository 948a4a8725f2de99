"""Threshold-based alert evaluation for nutrient readings."""

from __future__ import annotations

from typing import Any, List, Mapping

from app.schemas import AlertInfo, Severity
from models.records import FieldRange

NITROGEN_THRESHOLD = FieldRange(minimum=0, maximum=200, max_decimals=2, unit="ppm")
# Declared alongside the others but not checked by evaluate().
PHOSPHORUS_THRESHOLD = FieldRange(minimum=0, maximum=200, max_decimals=2, unit="ppm")
PH_THRESHOLD = FieldRange(minimum=6.0, maximum=7.0, max_decimals=1)

_DEVICE_TYPES = {
    "GH": "Greenhouse",
    "FD": "Field",
    "TB": "Tunnel",
    "PH": "Polyhouse",
}


def _value(reading: Any, name: str) -> float:
    if isinstance(reading, Mapping):
        return float(reading[name])
    return float(getattr(reading, name))


def evaluate(reading: Any) -> AlertInfo:
    """Return which thresholds a reading breaks.

    Accepts a stored ``Reading``, a ``NewReading`` or any mapping with
    ``nitrogen`` and ``ph`` keys. Nitrogen above its ceiling is an error; pH
    outside its band is a warning unless nitrogen already made it an error.
    """
    reasons: List[str] = []
    severity = Severity.warning

    nitrogen = _value(reading, "nitrogen")
    if nitrogen > NITROGEN_THRESHOLD.maximum:
        reasons.append(
            f"Nitrogen level ({nitrogen:g} ppm) exceeds maximum threshold of "
            f"{NITROGEN_THRESHOLD.maximum:g} ppm"
        )
        severity = Severity.error

    ph = _value(reading, "ph")
    if ph < PH_THRESHOLD.minimum or ph > PH_THRESHOLD.maximum:
        reasons.append(
            f"pH level ({ph:g}) is outside optimal range of "
            f"{PH_THRESHOLD.minimum:g}-{PH_THRESHOLD.maximum:g}"
        )
        if severity is not Severity.error:
            severity = Severity.warning

    return AlertInfo(triggered=bool(reasons), severity=severity, reasons=reasons)


def status_for(reading: Any) -> str:
    alert = evaluate(reading)
    if not alert.triggered:
        return "success"
    return alert.severity.value


def device_display_name(device_id: str) -> str:
    prefix, number = device_id[:2], device_id[2:]
    return f"{_DEVICE_TYPES.get(prefix, 'Device')} {number}"


def format_value(value: float, unit: str = "", decimals: int = 1) -> str:
    text = f"{value:.{decimals}f}"
    return f"{text} {unit}" if unit else text
