from __future__ import annotations
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import Reading
from services.errors import PersistenceError
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingTable:
    """Append-only reading collection, optionally mirrored to a JSON file."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, Reading] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: Reading) -> None:
        """Insert a new reading; existing ids are never overwritten."""
        with self._lock:
            if item.id in self._items:
                raise PersistenceError(f"Reading id {item.id!r} already exists in {self.name!r}.")
            self._items[item.id] = item.model_copy(deep=True)
            try:
                self._persist()
            except OSError as exc:
                del self._items[item.id]
                raise PersistenceError(f"Could not write table {self.name!r}.") from exc

    def get_item(self, key: str) -> Optional[Reading]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[Reading]:
        """Return deep copies of all stored readings."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            reading_id: item.model_dump(mode="json", by_alias=True)
            for reading_id, item in self._items.items()
        }
        # Readers only ever see the previous file or the complete new one.
        tmp_path = self.persistence_path.with_suffix(self.persistence_path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
            os.replace(tmp_path, self.persistence_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
            for reading_id, payload in data.items():
                self._items[reading_id] = Reading.model_validate(payload)
        except (OSError, ValueError, AttributeError) as exc:
            raise PersistenceError(
                f"Could not load table {self.name!r} from {self.persistence_path}."
            ) from exc

        logger.info(
            "Loaded readings from disk",
            extra={"path": self.persistence_path, "row_count": len(self._items)},
        )


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingTable:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return ReadingTable(name=table_name, persistence_path=persistence)
