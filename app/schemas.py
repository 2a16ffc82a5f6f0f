"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from services.validation import FieldError


class MessageResponse(BaseModel):
    """Single message body used for acknowledgements and non-field errors."""

    message: str


class FieldErrorModel(BaseModel):
    """One rejected field of a write payload."""

    field: str
    message: str

    @classmethod
    def from_error(cls, error: FieldError) -> "FieldErrorModel":
        return cls(field=error.field, message=error.message)


class ValidationErrorResponse(BaseModel):
    """Body returned when a payload fails field validation."""

    errors: List[FieldErrorModel] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
