"""Unit tests for the pure payload validation layer."""

from __future__ import annotations

from datetime import datetime, timezone

from bson import ObjectId

from models.entities import MACHINE, SENSOR, SENSOR_DATA
from services.validation import (
    FieldError,
    normalize_payload,
    parse_number,
    parse_timestamp,
    validate_payload,
)


def _fields(errors: list[FieldError]) -> list[str]:
    return [error.field for error in errors]


def test_full_payload_without_required_fields_lists_every_missing_field() -> None:
    errors = validate_payload(SENSOR, {"minValue": 1})

    assert _fields(errors) == ["name", "unitOfMeasurement", "maxValue", "machine"]
    assert all(error.message == "is required" for error in errors)


def test_partial_payload_ignores_absent_fields() -> None:
    assert validate_payload(SENSOR, {}, partial=True) == []
    assert validate_payload(MACHINE, {"description": "CNC lathe"}, partial=True) == []


def test_errors_are_collected_together_in_declaration_order() -> None:
    payload = {
        "name": "",
        "unitOfMeasurement": "C",
        "minValue": "low",
        "maxValue": 200,
        "machine": "not-an-id",
    }

    errors = validate_payload(SENSOR, payload)

    assert errors == [
        FieldError(field="name", message="must be a non-empty string"),
        FieldError(field="minValue", message="must be numeric"),
        FieldError(field="machine", message="must be a valid identifier"),
    ]


def test_number_check_accepts_numeric_strings_and_rejects_booleans() -> None:
    base = {"sensor": str(ObjectId())}

    assert validate_payload(SENSOR_DATA, {**base, "value": "12.5", "rawValue": 3}) == []
    errors = validate_payload(SENSOR_DATA, {**base, "value": True, "rawValue": "nan"})
    assert _fields(errors) == ["value", "rawValue"]


def test_optional_fields_accept_null_but_required_ones_do_not() -> None:
    assert validate_payload(MACHINE, {"description": None}, partial=True) == []

    errors = validate_payload(MACHINE, {"name": None}, partial=True)
    assert errors == [FieldError(field="name", message="is required")]


def test_sensor_data_date_is_optional_but_not_nullable() -> None:
    errors = validate_payload(SENSOR_DATA, {"date": None}, partial=True)
    assert errors == [FieldError(field="date", message="must not be null")]

    errors = validate_payload(SENSOR_DATA, {"date": "yesterday"}, partial=True)
    assert errors == [FieldError(field="date", message="must be an ISO-8601 timestamp")]


def test_legacy_sensor_id_field_is_rejected_with_hint() -> None:
    payload = {"value": 1, "rawValue": 2, "sensorId": str(ObjectId())}

    errors = validate_payload(SENSOR_DATA, payload)

    assert errors == [
        FieldError(field="sensor", message="is required"),
        FieldError(field="sensorId", message="has been renamed to 'sensor'"),
    ]


def test_non_mapping_body_is_rejected() -> None:
    assert validate_payload(MACHINE, ["name"]) == [
        FieldError(field="body", message="must be a JSON object")
    ]


def test_normalize_drops_unknown_and_server_fields_and_coerces_values() -> None:
    sensor_id = str(ObjectId())
    payload = {
        "id": str(ObjectId()),
        "value": "1.5",
        "rawValue": 7,
        "date": "2024-01-01T00:00:00Z",
        "sensor": sensor_id,
        "colour": "blue",
    }

    normalized = normalize_payload(SENSOR_DATA, payload)

    assert normalized == {
        "value": 1.5,
        "rawValue": 7.0,
        "date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "sensor": sensor_id,
    }


def test_parsers_handle_edge_values() -> None:
    assert parse_number(" 42 ") == 42.0
    assert parse_number("inf") is None
    assert parse_number(None) is None
    assert parse_timestamp("2024-01-01T01:00:00+01:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(12) is None


def test_sensor_bounds_are_required_on_create_but_clearable_on_update() -> None:
    payload = {"name": "Temp", "unitOfMeasurement": "C", "machine": str(ObjectId())}

    errors = validate_payload(SENSOR, payload)

    assert errors == [
        FieldError(field="minValue", message="is required"),
        FieldError(field="maxValue", message="is required"),
    ]
    assert validate_payload(SENSOR, {**payload, "minValue": None, "maxValue": 5}) == []
    assert validate_payload(SENSOR, {"minValue": None}, partial=True) == []


def test_out_of_range_values_are_field_errors() -> None:
    huge = 10 ** 400
    assert parse_number(huge) is None
    assert parse_timestamp("0001-01-01T00:00:00+01:00") is None

    errors = validate_payload(
        SENSOR_DATA,
        {"value": huge, "rawValue": 1, "date": "0001-01-01T00:00:00+01:00", "sensor": str(ObjectId())},
    )
    assert errors == [
        FieldError(field="value", message="must be numeric"),
        FieldError(field="date", message="must be an ISO-8601 timestamp"),
    ]
