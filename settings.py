from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_TABLE_NAME_ENV = "READINGS_TABLE_NAME"
_TABLE_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_CORS_ORIGINS_ENV = "CORS_ORIGINS"
_REFRESH_ENV = "DASHBOARD_REFRESH_SECONDS"


@dataclass(frozen=True)
class Settings:
    table_name: str
    table_persistence_path: Optional[str]
    log_level: str
    cors_origins: Tuple[str, ...]
    dashboard_refresh_seconds: int


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_origins(default: str) -> Tuple[str, ...]:
    raw = _read_str_env(_CORS_ORIGINS_ENV, default)
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings(
        table_name=_read_str_env(_TABLE_NAME_ENV, "readings"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/readings.json"),
        log_level=_read_log_level("INFO"),
        cors_origins=_read_origins("http://localhost:5173"),
        dashboard_refresh_seconds=_read_positive_int(_REFRESH_ENV, 30),
    )
