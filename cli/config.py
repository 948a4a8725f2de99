from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from cli.cache import DEFAULT_TTLS

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 10.0
DEFAULT_WATCH_INTERVAL = 10.0

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "CLI_REQUEST_TIMEOUT"
_WATCH_INTERVAL_ENV = "CLI_WATCH_INTERVAL"
_CACHE_TTL_ENV = "CLI_CACHE_TTL"


@dataclass(frozen=True)
class CLIConfig:
    """Connection and caching options for the reading service CLI.

    ``cache_ttls`` maps cache tags (readings, latest, stats) to seconds; an
    empty mapping turns the client-side query cache off.
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    cache_ttls: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_TTLS))

    @property
    def cache_enabled(self) -> bool:
        return any(ttl > 0 for ttl in self.cache_ttls.values())


def _parse_seconds(raw: Optional[str], allow_zero: bool = False) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        seconds = float(raw.strip())
    except ValueError:
        return None
    if seconds < 0 or (seconds == 0 and not allow_zero):
        return None
    return seconds


def _resolve_ttls(cache_ttl: Optional[float], use_cache: bool) -> Dict[str, float]:
    if not use_cache:
        return {}
    if cache_ttl is None:
        cache_ttl = _parse_seconds(os.getenv(_CACHE_TTL_ENV), allow_zero=True)
    if cache_ttl is None:
        return dict(DEFAULT_TTLS)
    if cache_ttl == 0:
        return {}
    return {tag: cache_ttl for tag in DEFAULT_TTLS}


def load_config(
    base_url: Optional[str] = None,
    request_timeout: Optional[float] = None,
    watch_interval: Optional[float] = None,
    cache_ttl: Optional[float] = None,
    use_cache: bool = True,
) -> CLIConfig:
    """Merge explicit overrides with environment variables and defaults.

    ``CLI_CACHE_TTL`` replaces the per-tag expiry for every tag; ``0``
    disables caching, as does ``use_cache=False``.
    """
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if request_timeout is None:
        request_timeout = _parse_seconds(os.getenv(_TIMEOUT_ENV)) or DEFAULT_TIMEOUT
    if watch_interval is None:
        watch_interval = _parse_seconds(os.getenv(_WATCH_INTERVAL_ENV)) or DEFAULT_WATCH_INTERVAL
    return CLIConfig(
        base_url=url.rstrip("/"),
        request_timeout=request_timeout,
        watch_interval=watch_interval,
        cache_ttls=_resolve_ttls(cache_ttl, use_cache),
    )
