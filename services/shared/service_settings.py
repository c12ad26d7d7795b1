from __future__ import annotations

"""
Environment-driven configuration for the RKAS service.

Settings are parsed in one place so the FastAPI app, the persistence layer and
the tests agree on which data backend is active and which budget year screens
open on, without each module re-reading `os.environ`.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

SUPPORTED_BACKENDS = frozenset({"database", "memory"})

DATA_BACKEND_ENV_VAR = "RKAS_DATA_BACKEND"
DB_URL_ENV_VAR = "RKAS_DB_URL"
DEFAULT_YEAR_ENV_VAR = "RKAS_DEFAULT_YEAR"
CORS_ENV_VAR = "RKAS_CORS_ORIGINS"

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:5000",
    "http://127.0.0.1:5000",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


class SettingsError(RuntimeError):
    """Raised when service configuration cannot be constructed."""


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    data_backend: str
    database_url: Optional[str]
    default_year: Optional[int]
    cors_origins: Tuple[str, ...]


def load_service_settings() -> ServiceSettings:
    """
    Construct ServiceSettings from the environment.

    Env vars:
        RKAS_DATA_BACKEND: `database` (SQLAlchemy) or `memory` (process-local dicts).
        RKAS_DB_URL: SQLAlchemy URL; unset means the bundled SQLite file.
        RKAS_DEFAULT_YEAR: budget year the period filter starts on.
        RKAS_CORS_ORIGINS: comma-separated origins, `*` to allow any.
    """

    return ServiceSettings(
        data_backend=_normalize_backend(os.getenv(DATA_BACKEND_ENV_VAR)),
        database_url=(os.getenv(DB_URL_ENV_VAR) or "").strip() or None,
        default_year=_parse_optional_int(os.getenv(DEFAULT_YEAR_ENV_VAR), DEFAULT_YEAR_ENV_VAR),
        cors_origins=_parse_origins(os.getenv(CORS_ENV_VAR)),
    )


def _normalize_backend(raw_value: Optional[str]) -> str:
    candidate = (raw_value or "").strip().lower()
    if not candidate:
        candidate = "database"

    if candidate not in SUPPORTED_BACKENDS:
        raise SettingsError(f"Unsupported data backend '{candidate}'")
    return candidate


def _parse_optional_int(raw_value: Optional[str], env_key: str) -> Optional[int]:
    if raw_value is None or raw_value.strip() == "":
        return None

    try:
        return int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{env_key} must be an integer (received '{raw_value}')") from exc


def _parse_origins(raw_value: Optional[str]) -> Tuple[str, ...]:
    if not raw_value:
        return DEFAULT_CORS_ORIGINS
    origins = tuple(origin.strip() for origin in raw_value.split(",") if origin.strip())
    if not origins:
        return DEFAULT_CORS_ORIGINS
    # FastAPI expects ["*"] instead of mixing '*' with explicit origins.
    if "*" in origins:
        return ("*",)
    return origins
