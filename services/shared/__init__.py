"""
Shared utilities for the RKAS planner services.

This package contains code shared across services and tests:
- service_settings: environment-driven service configuration
- observability: telemetry, logging, and privacy utilities
"""

from .service_settings import (
    SUPPORTED_BACKENDS,
    ServiceSettings,
    SettingsError,
    load_service_settings,
)

__all__ = [
    "SUPPORTED_BACKENDS",
    "ServiceSettings",
    "SettingsError",
    "load_service_settings",
]
