"""Boundary validation for reading submissions and list queries."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.schemas import ErrorDetail, ReadingQuery, ReadingSubmission
from models.records import NewReading
from services.errors import ValidationError
from services.timestamps import utc_now

logger = logging.getLogger(__name__)


def _field_errors(exc: PydanticValidationError) -> List[ErrorDetail]:
    details: List[ErrorDetail] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        details.append(ErrorDetail(field=location, message=error.get("msg", "Invalid value")))
    return details


def _validate(model: type[BaseModel], payload: Any, message: str) -> Any:
    if not isinstance(payload, Mapping):
        raise ValidationError(message, [ErrorDetail(field="body", message="Expected an object")])
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        errors = _field_errors(exc)
        for error in errors:
            logger.warning(
                "Rejected input", extra={"field": error.field, "reason": error.message}
            )
        raise ValidationError(message, errors) from exc


def validate_submission(
    payload: Mapping[str, Any], now: Optional[datetime] = None
) -> NewReading:
    """Check a submitted reading and resolve it into a ``NewReading``.

    ``now`` is read once up front and used as the timestamp when the
    payload does not carry one.
    """
    received_at = now or utc_now()
    submission: ReadingSubmission = _validate(ReadingSubmission, payload, "Invalid reading")
    return NewReading(
        device_id=submission.device_id,
        timestamp=submission.timestamp or received_at,
        nitrogen=submission.nitrogen,
        phosphorus=submission.phosphorus,
        ph=submission.ph,
    )


def validate_query(params: Optional[Mapping[str, Any]] = None) -> ReadingQuery:
    """Check list filters; ``limit`` above the maximum is rejected, not clamped."""
    return _validate(ReadingQuery, params or {}, "Invalid query parameters")
