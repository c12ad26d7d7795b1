import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any

REDACTED = "[REDACTED]"

# Record fields that are safe to log verbatim; everything else (names of
# responsible staff, free-text descriptions) is redacted.
LOGGABLE_RECORD_FIELDS = frozenset(
    {
        "id",
        "year",
        "status",
        "field_of_activity",
        "funding_source",
        "total",
        "allocated_budget",
        "used_budget",
        "code",
    }
)


def hash_payload(value: Any) -> str:
    """
    Return a stable SHA-256 hash of a record body so audit rows can prove what was
    written without storing it twice.
    """

    if value is None:
        normalized = b"null"
    elif isinstance(value, bytes):
        normalized = value
    elif isinstance(value, str):
        normalized = value.encode("utf-8")
    else:
        normalized = json.dumps(value, sort_keys=True, default=str).encode("utf-8")

    return hashlib.sha256(normalized).hexdigest()


def redact_fields(payload: Mapping[str, Any], allowed_keys: Iterable[str] = LOGGABLE_RECORD_FIELDS) -> dict[str, Any]:
    """Shallow copy keeping whitelisted keys and masking the rest."""

    whitelist = set(allowed_keys)
    return {key: (value if key in whitelist else REDACTED) for key, value in payload.items()}
