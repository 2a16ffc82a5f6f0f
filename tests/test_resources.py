"""Tests for the resource handlers against an in-memory store."""

from __future__ import annotations

import pytest
from bson import ObjectId

from datastore.document_store import DocumentStore, StoreUnavailable
from services.errors import MalformedReference, NotFound, ReadError, ValidationError, WriteError
from services.resources import ResourceServices, build_services


@pytest.fixture
def services() -> ResourceServices:
    return build_services(DocumentStore(name="test"))


def _machine(services: ResourceServices, name: str = "Lathe-1"):
    return services.machine.create(
        {"name": name, "description": "CNC lathe", "companyName": "Acme"}
    )


def test_create_with_missing_fields_reports_them_and_persists_nothing(
    services: ResourceServices,
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        services.sensor.create({"name": "Temp"})

    assert [error.field for error in excinfo.value.errors] == [
        "unitOfMeasurement",
        "minValue",
        "maxValue",
        "machine",
    ]
    assert services.sensor.list() == []


def test_create_then_get_returns_the_same_document(services: ResourceServices) -> None:
    sensor = services.sensor.create(
        {
            "name": "Temp",
            "unitOfMeasurement": "C",
            "minValue": "0",
            "maxValue": 200,
            "machine": str(ObjectId()),
        }
    )

    fetched = services.sensor.get_by_id(sensor.id)

    assert fetched == sensor
    assert fetched.min_value == 0.0
    assert fetched.max_value == 200.0


def test_machine_create_sets_matching_timestamps(services: ResourceServices) -> None:
    machine = _machine(services)

    assert machine.create_date == machine.update_date
    assert machine.company_name == "Acme"


def test_server_fields_in_payload_are_ignored(services: ResourceServices) -> None:
    supplied_id = str(ObjectId())
    machine = services.machine.create(
        {"name": "Press", "id": supplied_id, "createDate": "1999-01-01T00:00:00Z"}
    )

    assert machine.id != supplied_id
    assert machine.create_date.year != 1999


def test_delete_then_get_is_not_found(services: ResourceServices) -> None:
    machine = _machine(services)

    message = services.machine.delete_by_id(machine.id)

    assert message == "Machine entry deleted successfully"
    with pytest.raises(NotFound):
        services.machine.get_by_id(machine.id)
    with pytest.raises(NotFound):
        services.machine.delete_by_id(machine.id)


def test_machine_updates_strictly_increase_update_date(services: ResourceServices) -> None:
    machine = _machine(services)

    first = services.machine.update_by_id(machine.id, {"description": "Refurbished"})
    second = services.machine.update_by_id(machine.id, {})

    assert first.update_date > machine.update_date
    assert second.update_date > first.update_date
    assert second.create_date == machine.create_date
    assert second.update_date >= second.create_date
    assert second.description == "Refurbished"


def test_update_rejects_invalid_fields_without_writing(services: ResourceServices) -> None:
    machine = _machine(services)

    with pytest.raises(ValidationError) as excinfo:
        services.machine.update_by_id(machine.id, {"name": "", "companyName": 5})

    assert [error.field for error in excinfo.value.errors] == ["name", "companyName"]
    assert services.machine.get_by_id(machine.id).name == "Lathe-1"


def test_update_can_clear_optional_fields(services: ResourceServices) -> None:
    machine = _machine(services)

    updated = services.machine.update_by_id(machine.id, {"description": None})

    assert updated.description is None


def test_lookups_with_malformed_identifiers_are_not_found(services: ResourceServices) -> None:
    with pytest.raises(MalformedReference):
        services.sensor_data.get_by_id("not-an-id")
    with pytest.raises(NotFound):
        services.sensor_data.update_by_id("not-an-id", {"value": 1})
    with pytest.raises(NotFound):
        services.sensor_data.update_by_id(str(ObjectId()), {"value": 1})
    with pytest.raises(NotFound):
        services.sensor_data.delete_by_id("not-an-id")


def test_list_by_machine_without_matches_is_empty(services: ResourceServices) -> None:
    assert services.sensor.list_by_machine(str(ObjectId())) == []
    assert services.sensor.list_by_machine("not-an-id") == []


def test_deleting_a_machine_leaves_its_sensors_in_place(services: ResourceServices) -> None:
    machine = _machine(services)
    sensor = services.sensor.create(
        {
            "name": "Temp",
            "unitOfMeasurement": "C",
            "minValue": 0,
            "maxValue": 200,
            "machine": machine.id,
        }
    )

    services.machine.delete_by_id(machine.id)

    assert services.sensor.list_by_machine(machine.id) == [sensor]


def test_sensor_data_defaults_date_to_creation_time(services: ResourceServices) -> None:
    reading = services.sensor_data.create(
        {"value": 21.5, "rawValue": 2150, "sensor": str(ObjectId())}
    )
    dated = services.sensor_data.create(
        {
            "value": 21.5,
            "rawValue": 2150,
            "sensor": str(ObjectId()),
            "date": "2024-05-01T08:30:00Z",
        }
    )

    assert reading.date.tzinfo is not None
    assert dated.date.isoformat().startswith("2024-05-01T08:30:00")


def test_store_failures_surface_as_read_and_write_errors(
    services: ResourceServices, monkeypatch
) -> None:
    collection = services.machine.collection

    def unavailable(*_args, **_kwargs):
        raise StoreUnavailable("disk unplugged")

    monkeypatch.setattr(collection, "find", unavailable)
    monkeypatch.setattr(collection, "insert_one", unavailable)

    with pytest.raises(ReadError, match="disk unplugged"):
        services.machine.list()
    with pytest.raises(WriteError, match="disk unplugged"):
        services.machine.create({"name": "Press"})


def test_services_share_one_store_handle() -> None:
    store = DocumentStore(name="shared")
    first = build_services(store)
    second = build_services(store)

    created = first.machine.create({"name": "Press"})

    assert second.machine.get_by_id(created.id) == created
    assert build_services(DocumentStore(name="other")).machine.list() == []
