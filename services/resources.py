"""Resource handlers mapping CRUD operations onto the document store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Tuple, TypeVar

from datastore.document_store import (
    DocumentStore,
    StoreError,
    is_valid_identifier,
)
from models.entities import (
    MACHINE,
    SENSOR,
    SENSOR_DATA,
    Document,
    EntityDefinition,
    Machine,
    Sensor,
    SensorData,
)
from services.errors import MalformedReference, NotFound, ReadError, ValidationError, WriteError
from services.validation import normalize_payload, validate_payload

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=Document)


class ResourceService(Generic[DocumentT]):
    """Create, read, update and delete documents of one entity.

    Listing returns documents in the store's native order, which callers
    must not rely on.
    """

    current_date_fields: Tuple[str, ...] = ()

    def __init__(self, definition: EntityDefinition, store: DocumentStore) -> None:
        self.definition = definition
        self.collection = store.collection(definition.collection, definition.document_model)

    @property
    def _not_found_message(self) -> str:
        return f"{self.definition.label} entry not found"

    def create(self, payload: Any) -> DocumentT:
        errors = validate_payload(self.definition, payload)
        if errors:
            raise ValidationError(errors)

        fields = normalize_payload(self.definition, payload)
        now = datetime.now(timezone.utc)
        for name in self.definition.created_timestamps:
            fields.setdefault(name, now)

        try:
            document = self.collection.insert_one(fields)
        except StoreError as exc:
            raise WriteError(str(exc)) from exc

        logger.info(
            "Created document",
            extra={"resource": self.definition.name, "document_id": document.id},
        )
        return document

    def list(self) -> List[DocumentT]:
        try:
            return self.collection.find()
        except StoreError as exc:
            raise ReadError(str(exc)) from exc

    def get_by_id(self, document_id: str) -> DocumentT:
        self._require_identifier(document_id)
        try:
            document = self.collection.find_by_id(document_id)
        except StoreError as exc:
            raise ReadError(str(exc)) from exc
        if document is None:
            raise NotFound(self._not_found_message)
        return document

    def update_by_id(self, document_id: str, payload: Any) -> DocumentT:
        self._require_identifier(document_id)
        errors = validate_payload(self.definition, payload, partial=True)
        if errors:
            raise ValidationError(errors)

        changes = normalize_payload(self.definition, payload)
        try:
            document = self.collection.find_by_id_and_update(
                document_id, changes, current_date=self.current_date_fields
            )
        except StoreError as exc:
            raise WriteError(str(exc)) from exc
        if document is None:
            raise NotFound(self._not_found_message)

        logger.info(
            "Updated document",
            extra={"resource": self.definition.name, "document_id": document_id},
        )
        return document

    def delete_by_id(self, document_id: str) -> str:
        self._require_identifier(document_id)
        try:
            document = self.collection.find_by_id_and_delete(document_id)
        except StoreError as exc:
            raise WriteError(str(exc)) from exc
        if document is None:
            raise NotFound(self._not_found_message)

        logger.info(
            "Deleted document",
            extra={"resource": self.definition.name, "document_id": document_id},
        )
        return f"{self.definition.label} entry deleted successfully"

    def count(self) -> int:
        return self.collection.count()

    def _require_identifier(self, document_id: str) -> None:
        if not is_valid_identifier(document_id):
            raise MalformedReference(self._not_found_message)


class MachineService(ResourceService[Machine]):
    """Machines refresh ``updateDate`` on every successful update."""

    current_date_fields = ("updateDate",)

    def __init__(self, store: DocumentStore) -> None:
        super().__init__(MACHINE, store)


class SensorService(ResourceService[Sensor]):

    def __init__(self, store: DocumentStore) -> None:
        super().__init__(SENSOR, store)

    def list_by_machine(self, machine_id: str) -> List[Sensor]:
        """Sensors referencing ``machine_id``; the machine need not exist."""
        if not is_valid_identifier(machine_id):
            return []
        try:
            return self.collection.find({"machine": machine_id})
        except StoreError as exc:
            raise ReadError(str(exc)) from exc


class SensorDataService(ResourceService[SensorData]):

    def __init__(self, store: DocumentStore) -> None:
        super().__init__(SENSOR_DATA, store)


@dataclass(frozen=True)
class ResourceServices:
    machine: MachineService
    sensor: SensorService
    sensor_data: SensorDataService

    def by_entity(self, name: str) -> ResourceService[Any]:
        services: Dict[str, ResourceService[Any]] = {
            MACHINE.name: self.machine,
            SENSOR.name: self.sensor,
            SENSOR_DATA.name: self.sensor_data,
        }
        try:
            return services[name]
        except KeyError as exc:
            raise KeyError(f"Unknown entity {name!r}.") from exc


def build_services(store: DocumentStore) -> ResourceServices:
    """Wire one handler per entity around an explicit store handle."""
    return ResourceServices(
        machine=MachineService(store),
        sensor=SensorService(store),
        sensor_data=SensorDataService(store),
    )
