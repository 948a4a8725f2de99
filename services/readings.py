"""Reading store: ingestion and query operations over the reading table."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import List, Optional
from uuid import uuid4

from app.schemas import DeviceSummary, Reading, ReadingQuery, ReadingStats
from datastore.readings_table import ReadingTable, build_default_table
from models.records import NewReading
from services.aggregator import Aggregator
from services.errors import NotFoundError, PersistenceError
from services.timestamps import utc_now

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


class ReadingService:
    """Creates readings and serves list, latest, summary and count queries."""

    def __init__(self, table: ReadingTable, aggregator: Aggregator) -> None:
        self.table = table
        self.aggregator = aggregator

    def create(self, new_reading: NewReading) -> Reading:
        """Assign an id to a validated reading and persist it."""
        reading = Reading(
            id=str(uuid4()),
            device_id=new_reading.device_id,
            timestamp=new_reading.timestamp,
            nitrogen=new_reading.nitrogen,
            phosphorus=new_reading.phosphorus,
            ph=new_reading.ph,
        )
        try:
            self.table.put_item(reading)
        except PersistenceError as exc:
            logger.error(
                "Failed to create reading",
                extra={"reading_id": reading.id, "device_id": reading.device_id, "reason": str(exc)},
            )
            raise PersistenceError("Failed to create reading") from exc

        logger.info(
            "Stored reading",
            extra={"reading_id": reading.id, "device_id": reading.device_id},
        )
        return reading

    def list_readings(
        self,
        query: Optional[ReadingQuery] = None,
        now: Optional[datetime] = None,
    ) -> List[Reading]:
        """Readings matching ``query``, most recent first.

        Without a ``start_date`` the window opens 24 hours before ``now``.
        Both bounds are inclusive and ``end_date`` is open-ended when unset.
        """
        query = query or ReadingQuery()
        lower = query.start_date or ((now or utc_now()) - DEFAULT_WINDOW)
        upper = query.end_date

        matches = [
            reading
            for reading in self.table.scan()
            if reading.timestamp >= lower
            and (upper is None or reading.timestamp <= upper)
            and (query.device_id is None or reading.device_id == query.device_id)
        ]
        matches.sort(key=lambda reading: (reading.timestamp, reading.id), reverse=True)
        results = matches[: query.limit]
        logger.debug(
            "Listed readings",
            extra={"device_id": query.device_id, "limit": query.limit, "row_count": len(results)},
        )
        return results

    def latest_by_device(self) -> List[Reading]:
        return self.aggregator.latest_per_device(self.table.scan())

    def device_summaries(
        self,
        query: Optional[ReadingQuery] = None,
        now: Optional[datetime] = None,
    ) -> List[DeviceSummary]:
        return self.aggregator.summarize(self.list_readings(query, now=now))

    def find_by_id(self, reading_id: str) -> Reading:
        reading = self.table.get_item(reading_id)
        if reading is None:
            raise NotFoundError(f"Reading with ID {reading_id} not found")
        return reading

    def total_count(self) -> int:
        return self.table.count()

    def device_count(self) -> int:
        return len(self.aggregator.distinct_devices(self.table.scan()))

    def stats(self) -> ReadingStats:
        return ReadingStats(total_readings=self.total_count(), device_count=self.device_count())


@lru_cache
def build_default_service() -> ReadingService:
    """Factory that wires the service with the configured table."""
    return ReadingService(table=build_default_table(), aggregator=Aggregator())
