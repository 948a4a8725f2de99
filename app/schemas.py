"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from models.records import (
    DEVICE_ID_PATTERN,
    NITROGEN_RANGE,
    PH_RANGE,
    PHOSPHORUS_RANGE,
    FieldRange,
)
from services.timestamps import parse_timestamp


MAX_QUERY_LIMIT = 1000


class Severity(str, Enum):
    """Alert severities, ordered from least to most urgent."""

    warning = "warning"
    error = "error"


class ErrorDetail(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _coerce_measurement(value: Any, bounds: FieldRange, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise PydanticCustomError("not_numeric", "{label} must be a number", {"label": label})
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        raise PydanticCustomError(
            "not_numeric", "{label} must be a number", {"label": label}
        ) from None
    if not parsed.is_finite():
        raise PydanticCustomError("not_numeric", "{label} must be a number", {"label": label})

    unit = f" {bounds.unit}" if bounds.unit else ""
    if parsed < bounds.minimum or parsed > bounds.maximum:
        raise PydanticCustomError(
            "out_of_range",
            "{label} must be between {minimum} and {maximum}{unit}",
            {"label": label, "minimum": bounds.minimum, "maximum": bounds.maximum, "unit": unit},
        )

    exponent = parsed.normalize().as_tuple().exponent
    if isinstance(exponent, int) and -exponent > bounds.max_decimals:
        raise PydanticCustomError(
            "too_precise",
            "{label} must have at most {digits} decimal place(s)",
            {"label": label, "digits": bounds.max_decimals},
        )
    return float(parsed)


def _coerce_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return parse_timestamp(value.isoformat())
    if not isinstance(value, str):
        raise PydanticCustomError(
            "timestamp_invalid", "Timestamp must be a valid ISO 8601 date string"
        )
    try:
        return parse_timestamp(value)
    except ValueError:
        raise PydanticCustomError(
            "timestamp_invalid", "Timestamp must be a valid ISO 8601 date string"
        ) from None


class ReadingSubmission(_CamelModel):
    """Inbound payload for a new reading; timestamp stays optional here."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: str = Field(..., alias="deviceId", examples=["GH001"])
    timestamp: Optional[datetime] = Field(default=None, examples=["2024-03-15T10:30:00Z"])
    nitrogen: float = Field(..., examples=[150.5])
    phosphorus: float = Field(..., examples=[45.2])
    ph: float = Field(..., examples=[6.5])

    @field_validator("device_id", mode="before")
    @classmethod
    def _check_device_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not DEVICE_ID_PATTERN.fullmatch(value):
            raise PydanticCustomError(
                "device_id_invalid", "Device ID must be in format XX000 (e.g., GH001)"
            )
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _check_timestamp(cls, value: Any) -> Optional[datetime]:
        return _coerce_timestamp(value)

    @field_validator("nitrogen", mode="before")
    @classmethod
    def _check_nitrogen(cls, value: Any) -> float:
        return _coerce_measurement(value, NITROGEN_RANGE, "Nitrogen")

    @field_validator("phosphorus", mode="before")
    @classmethod
    def _check_phosphorus(cls, value: Any) -> float:
        return _coerce_measurement(value, PHOSPHORUS_RANGE, "Phosphorus")

    @field_validator("ph", mode="before")
    @classmethod
    def _check_ph(cls, value: Any) -> float:
        return _coerce_measurement(value, PH_RANGE, "pH")


class ReadingQuery(_CamelModel):
    """Validated filter for listing readings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: Optional[str] = Field(default=None, alias="deviceId")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    limit: int = Field(default=MAX_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT)

    @field_validator("device_id", mode="before")
    @classmethod
    def _blank_device_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _check_dates(cls, value: Any) -> Optional[datetime]:
        if isinstance(value, str) and not value.strip():
            return None
        return _coerce_timestamp(value)

    @field_validator("limit", mode="before")
    @classmethod
    def _default_blank_limit(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return MAX_QUERY_LIMIT
        if isinstance(value, bool):
            raise PydanticCustomError("limit_invalid", "limit must be an integer")
        return value


class Reading(_CamelModel):
    """A stored reading as served by the API and persisted on disk."""

    id: str = Field(..., description="Unique identifier assigned at creation.")
    device_id: str = Field(..., alias="deviceId")
    timestamp: datetime
    nitrogen: float
    phosphorus: float
    ph: float


class ReadingStats(_CamelModel):
    """Basic collection statistics."""

    total_readings: int = Field(..., ge=0, alias="totalReadings")
    device_count: int = Field(..., ge=0, alias="deviceCount")


class NutrientSummary(BaseModel):
    """Min/max/mean of one nutrient across a device's readings."""

    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None


class DeviceSummary(_CamelModel):
    """Aggregate metrics for one device over a query window."""

    device_id: str = Field(..., alias="deviceId")
    row_count: int = Field(..., ge=0, alias="rowCount")
    nitrogen: NutrientSummary = Field(default_factory=NutrientSummary)
    phosphorus: NutrientSummary = Field(default_factory=NutrientSummary)
    ph: NutrientSummary = Field(default_factory=NutrientSummary)


class AlertInfo(BaseModel):
    """Outcome of evaluating a reading against the alert thresholds."""

    triggered: bool
    severity: Severity = Severity.warning
    reasons: List[str] = Field(default_factory=list)
