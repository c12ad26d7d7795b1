"""Error types raised by the RKAS record stores and data-access adapters."""

from __future__ import annotations

from typing import Any, Mapping


class RkasError(Exception):
    """Base class for recoverable errors reported back to the caller."""

    error_code = "rkas_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RkasError):
    """
    Raised when submitted fields are missing or invalid.

    `errors` maps each offending field name to a message that can be shown next to
    the matching form input.
    """

    error_code = "validation_failed"

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid or missing fields: {fields}")


class NotFoundError(RkasError):
    """Raised when an operation targets an id that is not in the collection."""

    error_code = "record_not_found"

    def __init__(self, collection: str, record_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in '{collection}'.")


class ConflictError(RkasError):
    """Raised when a create/update would break a uniqueness constraint."""

    error_code = "duplicate_record"

    def __init__(self, collection: str, field: str, value: Any) -> None:
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"'{collection}' already has a record with {field}='{value}'.")


class DataAccessUnavailableError(RuntimeError):
    """
    Transient storage/network failure from the data-access backend.

    Kept outside the RkasError hierarchy: callers decide whether to retry or surface it.
    """
