"""Pure field-level validation of write payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from datastore.document_store import is_valid_identifier
from models.entities import EntityDefinition, FieldSpec, FieldType


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single rejected field and the reason it was rejected."""

    field: str
    message: str


def parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite number, or None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


_CHECKS: Dict[FieldType, tuple[Callable[[Any], bool], str]] = {
    FieldType.string: (_is_text, "must be a non-empty string"),
    FieldType.number: (lambda value: parse_number(value) is not None, "must be numeric"),
    FieldType.reference: (is_valid_identifier, "must be a valid identifier"),
    FieldType.timestamp: (
        lambda value: parse_timestamp(value) is not None,
        "must be an ISO-8601 timestamp",
    ),
}


def _check_field(spec: FieldSpec, value: Any) -> Optional[str]:
    if value is None:
        if spec.accepts_null:
            return None
        return "is required" if spec.required else "must not be null"
    check, message = _CHECKS[spec.type]
    return None if check(value) else message


def validate_payload(
    definition: EntityDefinition,
    payload: Any,
    partial: bool = False,
) -> List[FieldError]:
    """Collect every field error for ``payload``.

    With ``partial`` set, absent fields are skipped; otherwise required
    fields must be present. An empty list means the payload is accepted.
    """
    if not isinstance(payload, Mapping):
        return [FieldError(field="body", message="must be a JSON object")]

    errors: List[FieldError] = []
    for spec in definition.fields:
        if spec.name not in payload:
            if spec.required and not partial:
                errors.append(FieldError(field=spec.name, message="is required"))
            continue
        message = _check_field(spec, payload[spec.name])
        if message is not None:
            errors.append(FieldError(field=spec.name, message=message))

    for legacy, current in definition.renamed_fields.items():
        if legacy in payload:
            errors.append(
                FieldError(field=legacy, message=f"has been renamed to {current!r}")
            )
    return errors


def normalize_payload(definition: EntityDefinition, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only declared fields, coercing numbers and timestamps.

    Expects a payload that already passed :func:`validate_payload`; unknown and
    server-managed keys are dropped.
    """
    normalized: Dict[str, Any] = {}
    for spec in definition.fields:
        if spec.name not in payload:
            continue
        value = payload[spec.name]
        if value is not None:
            if spec.type is FieldType.number:
                value = parse_number(value)
            elif spec.type is FieldType.timestamp:
                value = parse_timestamp(value)
            elif spec.type is FieldType.string:
                value = value.strip()
        normalized[spec.name] = value
    return normalized
