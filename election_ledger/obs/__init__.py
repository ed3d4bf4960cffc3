"""Observability utilities."""

from .metrics import (
    LEDGER_EVENT_COUNTER,
    LEDGER_REJECTION_COUNTER,
    REQUEST_COUNTER,
    REQUEST_ERROR_COUNTER,
    REQUEST_LATENCY_SECONDS,
    PrometheusMiddleware,
    metrics_router,
    record_ledger_events,
    record_ledger_rejection,
)
from .tracing import (
    initialise_tracing,
    instrument_fastapi_app,
    instrument_sqlalchemy_engine,
    ledger_command_span,
)

__all__ = [
    "LEDGER_EVENT_COUNTER",
    "LEDGER_REJECTION_COUNTER",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "metrics_router",
    "record_ledger_events",
    "record_ledger_rejection",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
    "ledger_command_span",
]
