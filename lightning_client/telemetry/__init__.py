"""
OpenTelemetry Integration Module

Provides tracing and metrics for the RPC client:
- tracer: Tracer setup and per-call spans
- metrics: Request, error and reconnect counters, latency histograms
"""

from .tracer import (
    setup_tracer,
    create_span
)
from .metrics import (
    setup_metrics,
    increment_counter,
    record_latency,
    add_gauge_callback
)

__all__ = [
    "setup_tracer",
    "create_span",
    "setup_metrics",
    "increment_counter",
    "record_latency",
    "add_gauge_callback"
]
