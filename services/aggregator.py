"""Aggregation logic for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from app.schemas import DeviceSummary, NutrientSummary, Reading

_NUTRIENTS = ("nitrogen", "phosphorus", "ph")


@dataclass
class _RunningStats:
    count: int = 0
    total: float = 0.0
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value

    def summary(self) -> NutrientSummary:
        mean = self.total / self.count if self.count else None
        return NutrientSummary(min_value=self.min_value, max_value=self.max_value, mean_value=mean)


@dataclass
class _DeviceAccumulator:
    row_count: int = 0
    stats: Dict[str, _RunningStats] = field(
        default_factory=lambda: {name: _RunningStats() for name in _NUTRIENTS}
    )


class Aggregator:
    """Pure grouping passes over readings; holds no state between calls."""

    @staticmethod
    def _is_newer(candidate: Reading, current: Reading) -> bool:
        # Equal timestamps fall back to the higher id so the pick is stable.
        return (candidate.timestamp, candidate.id) > (current.timestamp, current.id)

    def latest_per_device(self, readings: Iterable[Reading]) -> List[Reading]:
        latest: Dict[str, Reading] = {}
        for reading in readings:
            current = latest.get(reading.device_id)
            if current is None or self._is_newer(reading, current):
                latest[reading.device_id] = reading
        return [latest[device_id] for device_id in sorted(latest)]

    def distinct_devices(self, readings: Iterable[Reading]) -> List[str]:
        return sorted({reading.device_id for reading in readings})

    def summarize(self, readings: Iterable[Reading]) -> List[DeviceSummary]:
        accumulators: Dict[str, _DeviceAccumulator] = {}
        for reading in readings:
            accumulator = accumulators.setdefault(reading.device_id, _DeviceAccumulator())
            accumulator.row_count += 1
            for name in _NUTRIENTS:
                accumulator.stats[name].add(getattr(reading, name))

        return [
            DeviceSummary(
                device_id=device_id,
                row_count=accumulator.row_count,
                nitrogen=accumulator.stats["nitrogen"].summary(),
                phosphorus=accumulator.stats["phosphorus"].summary(),
                ph=accumulator.stats["ph"].summary(),
            )
            for device_id, accumulator in sorted(accumulators.items())
        ]
