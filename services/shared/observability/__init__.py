"""
Shared observability helpers (telemetry, privacy utilities).

Services import from this package so logging and tracing look the same in
every process.
"""

from .privacy import REDACTED, hash_payload, redact_fields
from .telemetry import (
    CORRELATION_ID_HEADER,
    RequestContextToken,
    bind_request_context,
    configure_logging,
    current_request_id,
    ensure_request_id,
    reset_request_context,
    setup_telemetry,
)

__all__ = [
    "REDACTED",
    "hash_payload",
    "redact_fields",
    "CORRELATION_ID_HEADER",
    "RequestContextToken",
    "bind_request_context",
    "configure_logging",
    "current_request_id",
    "ensure_request_id",
    "reset_request_context",
    "setup_telemetry",
]
