from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from services.errors import ValidationError
from services.validation import validate_query, validate_submission

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _payload(**overrides):
    payload = {"deviceId": "GH001", "nitrogen": 150.5, "phosphorus": 45.2, "ph": 6.5}
    payload.update(overrides)
    return payload


def _fields(exc: ValidationError) -> list[str]:
    return [error.field for error in exc.errors]


def test_valid_submission_is_normalized() -> None:
    reading = validate_submission(
        _payload(nitrogen="150.25", timestamp="2024-03-15T10:30:00Z"), now=NOW
    )

    assert reading.device_id == "GH001"
    assert reading.nitrogen == 150.25
    assert isinstance(reading.nitrogen, float)
    assert reading.phosphorus == 45.2
    assert reading.ph == 6.5
    assert reading.timestamp == datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


def test_missing_timestamp_uses_supplied_now() -> None:
    reading = validate_submission(_payload(), now=NOW)

    assert reading.timestamp == NOW


def test_null_timestamp_uses_now() -> None:
    reading = validate_submission(_payload(timestamp=None), now=NOW)

    assert reading.timestamp == NOW


def test_naive_and_offset_timestamps_become_utc() -> None:
    naive = validate_submission(_payload(timestamp="2024-03-15T10:30:00"), now=NOW)
    offset = validate_submission(_payload(timestamp="2024-03-15T12:30:00+02:00"), now=NOW)

    assert naive.timestamp == datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)
    assert offset.timestamp == naive.timestamp
    assert offset.timestamp.tzinfo == timezone.utc


@pytest.mark.parametrize("device_id", ["GH001", "FD999", "TB123"])
def test_device_id_pattern_accepts(device_id: str) -> None:
    assert validate_submission(_payload(deviceId=device_id), now=NOW).device_id == device_id


@pytest.mark.parametrize(
    "device_id",
    ["gh001", "G001", "GH0001", "GH01A", "GH001\n", "GH\u0661\u0662\u0663", "", 12345, None],
)
def test_device_id_pattern_rejects(device_id) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(_payload(deviceId=device_id), now=NOW)

    assert _fields(excinfo.value) == ["deviceId"]
    assert "XX000" in excinfo.value.errors[0].message


@pytest.mark.parametrize(
    "field, value",
    [
        ("nitrogen", 0),
        ("nitrogen", 500),
        ("phosphorus", 0),
        ("phosphorus", 200),
        ("ph", 0),
        ("ph", 14),
        ("ph", 7.1),
    ],
)
def test_boundary_values_are_accepted(field: str, value: float) -> None:
    reading = validate_submission(_payload(**{field: value}), now=NOW)

    assert getattr(reading, field) == value


@pytest.mark.parametrize(
    "field, value",
    [
        ("nitrogen", -0.01),
        ("nitrogen", 500.01),
        ("phosphorus", -1),
        ("phosphorus", 200.5),
        ("ph", -0.1),
        ("ph", 14.1),
    ],
)
def test_out_of_range_values_are_rejected(field: str, value: float) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(_payload(**{field: value}), now=NOW)

    assert _fields(excinfo.value) == [field]
    assert "between" in excinfo.value.errors[0].message


@pytest.mark.parametrize(
    "field, value",
    [("nitrogen", 150.123), ("phosphorus", "45.001"), ("ph", 6.55)],
)
def test_excess_precision_is_rejected(field: str, value) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(_payload(**{field: value}), now=NOW)

    assert _fields(excinfo.value) == [field]
    assert "decimal place" in excinfo.value.errors[0].message


def test_trailing_zeros_do_not_count_as_precision() -> None:
    reading = validate_submission(_payload(ph="6.50", nitrogen="150.500"), now=NOW)

    assert reading.ph == 6.5
    assert reading.nitrogen == 150.5


@pytest.mark.parametrize("value", ["abc", True, None, [1], "nan", "inf"])
def test_non_numeric_values_are_rejected(value) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(_payload(nitrogen=value), now=NOW)

    assert _fields(excinfo.value) == ["nitrogen"]


def test_missing_fields_are_all_reported() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission({"deviceId": "GH001"}, now=NOW)

    assert sorted(_fields(excinfo.value)) == ["nitrogen", "ph", "phosphorus"]


@pytest.mark.parametrize("timestamp", ["not-a-date", "2024-13-45T00:00:00Z", 1700000000, ""])
def test_invalid_timestamp_is_rejected(timestamp) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(_payload(timestamp=timestamp), now=NOW)

    assert _fields(excinfo.value) == ["timestamp"]
    assert "ISO 8601" in excinfo.value.errors[0].message


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_submission(["GH001", 1, 2, 3], now=NOW)  # type: ignore[arg-type]

    assert _fields(excinfo.value) == ["body"]


def test_unknown_keys_are_ignored() -> None:
    reading = validate_submission(_payload(id="client-chosen", extra=1), now=NOW)

    assert reading.device_id == "GH001"


def test_rejections_are_logged(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        with pytest.raises(ValidationError):
            validate_submission(_payload(ph=20), now=NOW)

    records = [record for record in caplog.records if record.name == "services.validation"]
    assert records
    assert any(getattr(record, "field", None) == "ph" for record in records)


def test_query_defaults() -> None:
    query = validate_query()

    assert query.limit == 1000
    assert query.device_id is None
    assert query.start_date is None
    assert query.end_date is None


def test_query_parses_strings() -> None:
    query = validate_query(
        {
            "deviceId": "GH002",
            "startDate": "2024-03-15T00:00:00Z",
            "endDate": "2024-03-15T23:59:59Z",
            "limit": "25",
        }
    )

    assert query.device_id == "GH002"
    assert query.start_date == datetime(2024, 3, 15, tzinfo=timezone.utc)
    assert query.end_date == datetime(2024, 3, 15, 23, 59, 59, tzinfo=timezone.utc)
    assert query.limit == 25


def test_query_blank_values_are_absent() -> None:
    query = validate_query({"deviceId": "", "startDate": "", "limit": ""})

    assert query.device_id is None
    assert query.start_date is None
    assert query.limit == 1000


def test_query_limit_bounds() -> None:
    assert validate_query({"limit": 1000}).limit == 1000
    assert validate_query({"limit": 1}).limit == 1

    for bad in (1001, 0, -5, "ten", 2.5):
        with pytest.raises(ValidationError) as excinfo:
            validate_query({"limit": bad})
        assert _fields(excinfo.value) == ["limit"]


def test_query_rejects_bad_dates() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_query({"startDate": "yesterday", "endDate": "tomorrow"})

    assert sorted(_fields(excinfo.value)) == ["endDate", "startDate"]
