"""Domain models shared across services."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

DEVICE_ID_PATTERN = re.compile(r"[A-Z]{2}[0-9]{3}")


@dataclass(frozen=True)
class FieldRange:
    """Inclusive bounds and maximum fractional digits for a numeric field."""

    minimum: float
    maximum: float
    max_decimals: int
    unit: str = ""


NITROGEN_RANGE = FieldRange(minimum=0, maximum=500, max_decimals=2, unit="ppm")
PHOSPHORUS_RANGE = FieldRange(minimum=0, maximum=200, max_decimals=2, unit="ppm")
PH_RANGE = FieldRange(minimum=0, maximum=14, max_decimals=1)


@dataclass(frozen=True, slots=True)
class NewReading:
    """A validated reading that has not been assigned an id yet."""

    device_id: str
    timestamp: datetime
    nitrogen: float
    phosphorus: float
    ph: float
