"""Entity documents and the schema description shared across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, Mapping, Optional, Tuple, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from datastore.document_store import is_valid_identifier


def _check_identifier(value: str) -> str:
    if not is_valid_identifier(value):
        raise ValueError(f"Cast to ObjectId failed for value {value!r}")
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


Identifier = Annotated[str, AfterValidator(_check_identifier)]


class Document(BaseModel):
    """Base for stored documents; serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Identifier


class Machine(Document):
    """A physical production unit that hosts sensors."""

    name: str
    description: Optional[str] = None
    company_name: Optional[str] = None
    create_date: datetime = Field(default_factory=_utcnow)
    update_date: datetime = Field(default_factory=_utcnow)


class Sensor(Document):
    """A measuring device attached to a machine."""

    name: str
    unit_of_measurement: str
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    create_date: datetime = Field(default_factory=_utcnow)
    machine: Identifier


class SensorData(Document):
    """A single timestamped measurement produced by a sensor."""

    value: float
    raw_value: float
    date: datetime = Field(default_factory=_utcnow)
    sensor: Identifier


class FieldType(str, Enum):
    """Value shapes understood by the validation layer."""

    string = "string"
    number = "number"
    reference = "identifier-reference"
    timestamp = "timestamp"


@dataclass(frozen=True)
class FieldSpec:
    """Wire-level description of one writable field."""

    name: str
    type: FieldType
    required: bool = False
    nullable: Optional[bool] = None
    references: Optional[str] = None

    @property
    def accepts_null(self) -> bool:
        if self.nullable is not None:
            return self.nullable
        return not self.required


@dataclass(frozen=True)
class EntityDefinition:
    """Schema description consumed by handlers, routers and the admin console."""

    name: str
    label: str
    collection: str
    document_model: Type[Document]
    fields: Tuple[FieldSpec, ...]
    created_timestamps: Tuple[str, ...] = ("createDate",)
    renamed_fields: Mapping[str, str] = field(default_factory=dict)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def columns(self) -> Tuple[str, ...]:
        server_fields = tuple(
            name for name in self.created_timestamps if name not in self.field_names
        )
        return ("id",) + self.field_names + server_fields

    def get_field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


MACHINE = EntityDefinition(
    name="machine",
    label="Machine",
    collection="machines",
    document_model=Machine,
    fields=(
        FieldSpec("name", FieldType.string, required=True),
        FieldSpec("description", FieldType.string),
        FieldSpec("companyName", FieldType.string),
    ),
    created_timestamps=("createDate", "updateDate"),
)

SENSOR = EntityDefinition(
    name="sensor",
    label="Sensor",
    collection="sensors",
    document_model=Sensor,
    fields=(
        FieldSpec("name", FieldType.string, required=True),
        FieldSpec("unitOfMeasurement", FieldType.string, required=True),
        FieldSpec("minValue", FieldType.number, required=True, nullable=True),
        FieldSpec("maxValue", FieldType.number, required=True, nullable=True),
        FieldSpec("machine", FieldType.reference, required=True, references="machine"),
    ),
)

# Producers used to send the sensor reference as ``sensorId``.
SENSOR_DATA = EntityDefinition(
    name="sensor-data",
    label="Sensor data",
    collection="sensor_data",
    document_model=SensorData,
    fields=(
        FieldSpec("value", FieldType.number, required=True),
        FieldSpec("rawValue", FieldType.number, required=True),
        FieldSpec("date", FieldType.timestamp, nullable=False),
        FieldSpec("sensor", FieldType.reference, required=True, references="sensor"),
    ),
    created_timestamps=("date",),
    renamed_fields={"sensorId": "sensor"},
)

ENTITIES: Dict[str, EntityDefinition] = {
    definition.name: definition for definition in (MACHINE, SENSOR, SENSOR_DATA)
}


def get_entity(name: str) -> EntityDefinition:
    try:
        return ENTITIES[name]
    except KeyError as exc:
        raise KeyError(f"Unknown entity {name!r}.") from exc
