"""Failures raised by resource handlers."""

from __future__ import annotations

from typing import Sequence

from services.validation import FieldError


class ResourceError(Exception):
    """Base class; ``message`` is safe to return to clients."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ResourceError):
    """The payload failed one or more field checks."""

    def __init__(self, errors: Sequence[FieldError]) -> None:
        fields = ", ".join(error.field for error in errors)
        super().__init__(f"Validation failed for: {fields}")
        self.errors = list(errors)


class NotFound(ResourceError):
    pass


class MalformedReference(NotFound):
    """A looked-up identifier is not in the store's identifier format."""


class ReadError(ResourceError):
    pass


class WriteError(ResourceError):
    pass
