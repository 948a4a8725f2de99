import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.readings_table import ReadingTable
from services.aggregator import Aggregator
from services.errors import PersistenceError
from services.readings import ReadingService, build_default_service


def _install_service(monkeypatch, service: ReadingService) -> None:
    def build_test_service() -> ReadingService:
        return service

    build_test_service.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("app.web.build_default_service", build_test_service)


@pytest.fixture
def service(tmp_path) -> ReadingService:
    table = ReadingTable(name="test", persistence_path=tmp_path / "readings.json")
    return ReadingService(table=table, aggregator=Aggregator())


@pytest.fixture
def api_client(service: ReadingService, monkeypatch) -> Iterator[TestClient]:
    _install_service(monkeypatch, service)
    app = create_app()
    with TestClient(app) as client:
        yield client


def _iso(hours_ago: float) -> str:
    moment = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return moment.isoformat()


def _submit(client: TestClient, device_id: str = "GH001", hours_ago: Optional[float] = None, **values):
    payload = {
        "deviceId": device_id,
        "nitrogen": values.get("nitrogen", 150.5),
        "phosphorus": values.get("phosphorus", 45.2),
        "ph": values.get("ph", 6.5),
    }
    if hours_ago is not None:
        payload["timestamp"] = _iso(hours_ago)
    response = client.post("/api/readings", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_lifespan_clears_service_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("READINGS_PERSISTENCE_PATH", str(tmp_path / "lifespan.json"))
    from settings import get_settings
    from datastore.readings_table import build_default_table

    get_settings.cache_clear()
    build_default_table.cache_clear()
    build_default_service.cache_clear()
    try:
        app = create_app()
        with TestClient(app):
            service_during = build_default_service()

        service_after = build_default_service()
        assert service_after is not service_during
    finally:
        build_default_service.cache_clear()
        build_default_table.cache_clear()
        get_settings.cache_clear()


def test_submit_reading_returns_stored_row(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/readings",
        json={
            "deviceId": "GH001",
            "timestamp": "2024-03-15T10:30:00Z",
            "nitrogen": 150.5,
            "phosphorus": 45.2,
            "ph": 6.5,
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"id", "deviceId", "timestamp", "nitrogen", "phosphorus", "ph"}
    assert uuid.UUID(body["id"])
    assert body["deviceId"] == "GH001"
    assert body["timestamp"].startswith("2024-03-15T10:30:00")
    assert body["nitrogen"] == 150.5


def test_submit_without_timestamp_uses_submission_time(api_client: TestClient) -> None:
    before = datetime.now(timezone.utc)
    body = _submit(api_client)
    after = datetime.now(timezone.utc)

    stored = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert before <= stored <= after


def test_submit_invalid_reading_returns_field_errors(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/readings",
        json={"deviceId": "gh001", "nitrogen": 600, "phosphorus": 45.2, "ph": 6.5},
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid reading"
    fields = sorted(error["field"] for error in detail["errors"])
    assert fields == ["deviceId", "nitrogen"]


def test_submit_non_object_body_is_rejected(api_client: TestClient) -> None:
    response = api_client.post("/api/readings", json=[1, 2, 3])

    assert response.status_code == 400


def test_submit_storage_failure_returns_generic_error(
    api_client: TestClient, service: ReadingService, monkeypatch
) -> None:
    def broken_put(_item) -> None:
        raise PersistenceError("disk full on /var/lib/readings")

    monkeypatch.setattr(service.table, "put_item", broken_put)

    response = api_client.post(
        "/api/readings",
        json={"deviceId": "GH001", "nitrogen": 1, "phosphorus": 1, "ph": 7},
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to create reading"}


def test_list_readings_defaults_to_last_day(api_client: TestClient) -> None:
    _submit(api_client, hours_ago=3)
    newest = _submit(api_client, hours_ago=1)
    _submit(api_client, hours_ago=30)

    response = api_client.get("/api/readings")

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 2
    assert body[0]["id"] == newest["id"]


def test_list_readings_filters(api_client: TestClient) -> None:
    _submit(api_client, "GH001", hours_ago=40)
    _submit(api_client, "GH002", hours_ago=40)
    _submit(api_client, "GH001", hours_ago=1)

    response = api_client.get(
        "/api/readings",
        params={"deviceId": "GH001", "startDate": _iso(48), "limit": 5},
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["deviceId"] for row in body] == ["GH001", "GH001"]


def test_list_readings_rejects_limit_above_maximum(api_client: TestClient) -> None:
    rejected = api_client.get("/api/readings", params={"limit": 1001})
    accepted = api_client.get("/api/readings", params={"limit": 1000})

    assert rejected.status_code == 400
    assert rejected.json()["detail"]["errors"][0]["field"] == "limit"
    assert accepted.status_code == 200


def test_list_readings_rejects_bad_dates(api_client: TestClient) -> None:
    response = api_client.get("/api/readings", params={"startDate": "last tuesday"})

    assert response.status_code == 400


def test_latest_and_stats(api_client: TestClient) -> None:
    _submit(api_client, "GH002", hours_ago=2)
    _submit(api_client, "GH001", hours_ago=2)
    newest = _submit(api_client, "GH001", hours_ago=1)

    latest = api_client.get("/api/readings/latest").json()
    stats = api_client.get("/api/readings/stats").json()

    assert [row["deviceId"] for row in latest] == ["GH001", "GH002"]
    assert latest[0]["id"] == newest["id"]
    assert stats == {"totalReadings": 3, "deviceCount": 2}


def test_summary_endpoint(api_client: TestClient) -> None:
    _submit(api_client, "GH001", hours_ago=1, nitrogen=100)
    _submit(api_client, "GH001", hours_ago=2, nitrogen=200)

    body = api_client.get("/api/readings/summary").json()

    assert len(body) == 1
    assert body[0]["deviceId"] == "GH001"
    assert body[0]["rowCount"] == 2
    assert body[0]["nitrogen"]["mean_value"] == 150.0


def test_get_reading_by_id(api_client: TestClient) -> None:
    created = _submit(api_client)

    first = api_client.get(f"/api/readings/{created['id']}")
    second = api_client.get(f"/api/readings/{created['id']}")

    assert first.status_code == 200
    assert first.json() == created
    assert second.json() == first.json()


def test_get_missing_reading_returns_not_found(api_client: TestClient) -> None:
    missing_id = str(uuid.uuid4())
    response = api_client.get(f"/api/readings/{missing_id}")

    assert response.status_code == 404
    body = response.json()
    assert missing_id in body["detail"]


def test_unexpected_errors_do_not_leak(service: ReadingService, monkeypatch) -> None:
    _install_service(monkeypatch, service)

    def explode() -> List:
        raise RuntimeError("secret connection string")

    monkeypatch.setattr(service, "latest_by_device", explode)
    app = create_app()
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/readings/latest")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "secret" not in response.text


def test_health_endpoints(api_client: TestClient) -> None:
    health = api_client.get("/health").json()
    root = api_client.get("/").json()

    assert health["status"] == "ok"
    assert health["uptime"] >= 0
    assert "timestamp" in health
    assert root["status"] == "ok"
