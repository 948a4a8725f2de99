from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx
import typer

from cli.cache import LATEST_TAG, READINGS_TAG, STATS_TAG, QueryCache
from cli.config import CLIConfig


class ApiClient:
    """HTTP client for the reading service with a local query cache."""

    def __init__(self, config: CLIConfig, cache: Optional[QueryCache] = None) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)
        self.cache = cache if cache is not None else QueryCache(ttls=config.cache_ttls)

    def close(self) -> None:
        self._client.close()

    def submit_reading(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.post("/api/readings", json=dict(payload))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        self.cache.invalidate(READINGS_TAG, LATEST_TAG, STATS_TAG)
        return response.json()

    def list_readings(self, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        query = {name: value for name, value in (params or {}).items() if value is not None}
        return self._cached_get(READINGS_TAG, "/api/readings", query)

    def latest_readings(self) -> List[Dict[str, Any]]:
        return self._cached_get(LATEST_TAG, "/api/readings/latest")

    def stats(self) -> Dict[str, Any]:
        return self._cached_get(STATS_TAG, "/api/readings/stats")

    def get_reading(self, reading_id: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/api/readings/{reading_id}")
            if response.status_code == 404:
                raise typer.BadParameter(f"Reading {reading_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def _cached_get(self, tag: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        cached = self.cache.get(tag, params)
        if cached is not None:
            return cached
        try:
            response = self._client.get(path, params=params or None)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        self.cache.put(tag, payload, params)
        return payload

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            errors = detail.get("errors") or []
            fields = "; ".join(f"{error.get('field')}: {error.get('message')}" for error in errors)
            detail = f"{detail.get('message')} ({fields})" if fields else detail.get("message")
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
