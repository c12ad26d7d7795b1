"""
Logging and tracing bootstrap for the RKAS service.

`setup_telemetry` installs JSON logging (with service name, request id and,
when tracing is on, trace/span ids on every record) and optionally wires
OpenTelemetry tracing for the FastAPI app.
"""

from __future__ import annotations

import logging
import os
from contextvars import ContextVar, Token
from uuid import uuid4

from fastapi import FastAPI, Request
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanContext
from pythonjsonlogger import jsonlogger

CORRELATION_ID_HEADER = "x-request-id"
RequestContextToken = Token

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s %(service_name)s %(request_id)s"

_logging_configured = False
_request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def setup_telemetry(app: FastAPI, service_name: str) -> None:
    """
    Configure logging, and tracing when `ENABLE_TELEMETRY` is truthy.

    Args:
        app: FastAPI app that should emit spans.
        service_name: Default service label; `OTEL_SERVICE_NAME` overrides it.
    """

    enable_traces = _parse_bool(os.getenv("ENABLE_TELEMETRY", "false"))
    enable_console_export = _parse_bool(os.getenv("OTEL_CONSOLE_EXPORT", "false"))
    service_label = os.getenv("OTEL_SERVICE_NAME", service_name)

    configure_logging(service_label, enable_traces)

    if enable_traces:
        _configure_tracing(service_label, enable_console_export)
        FastAPIInstrumentor.instrument_app(app)
        LoggingInstrumentor().instrument(set_logging_format=False)


def configure_logging(service_name: str, enable_traces: bool = False) -> None:
    """Install the JSON handler on the root logger once per process."""
    global _logging_configured
    if _logging_configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    handler.addFilter(_TelemetryLogFilter(service_name, enable_traces))

    level = os.getenv("RKAS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, handlers=[handler], force=True)
    _logging_configured = True


def ensure_request_id(request: Request | None, header_name: str = CORRELATION_ID_HEADER) -> str:
    """Return the inbound x-request-id, generating (and remembering) a UUID4 when absent."""

    if request is not None:
        existing = request.headers.get(header_name) or getattr(request.state, "request_id", None)
        if existing:
            request.state.request_id = existing
            return existing

    request_id = str(uuid4())
    if request is not None:
        request.state.request_id = request_id
    return request_id


def bind_request_context(request_id: str | None) -> RequestContextToken:
    return _request_id_ctx_var.set(request_id)


def reset_request_context(token: RequestContextToken | None) -> None:
    if token is not None:
        _request_id_ctx_var.reset(token)


def current_request_id() -> str | None:
    return _request_id_ctx_var.get()


def _configure_tracing(service_name: str, enable_console_export: bool) -> None:
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    exporter = OTLPSpanExporter(endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318/v1/traces"))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class _TelemetryLogFilter(logging.Filter):
    """Stamps service/request/trace identifiers onto each record for the JSON formatter."""

    def __init__(self, service_name: str, traces_enabled: bool) -> None:
        super().__init__()
        self._service_name = service_name
        self._traces_enabled = traces_enabled

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.service_name = self._service_name
        record.request_id = _request_id_ctx_var.get()
        record.trace_id = None
        record.span_id = None

        if self._traces_enabled:
            span = trace.get_current_span()
            context = span.get_span_context() if isinstance(span, Span) else None
            if isinstance(context, SpanContext) and context.is_valid:
                record.trace_id = format(context.trace_id, "032x")
                record.span_id = format(context.span_id, "016x")
        return True
