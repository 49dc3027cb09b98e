"""Prometheus metrics registry for the NSCA client."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Metric definitions
nsca_messages_total: Final = Counter(  # type: ignore[assignment]
    "nsca_messages_total",
    "Total check messages processed by the endpoint runner",
    ["server", "outcome"],
)

nsca_send_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "nsca_send_latency_seconds",
    "Time to deliver one check message (connect included when needed)",
    ["server"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

nsca_connect_total: Final = Counter(  # type: ignore[assignment]
    "nsca_connect_total",
    "Total connect attempts (dial + handshake)",
    ["server", "outcome"],
)

nsca_session_close_total: Final = Counter(  # type: ignore[assignment]
    "nsca_session_close_total",
    "Total session teardowns",
    ["server", "reason"],
)

nsca_connection_state: Final = Gauge(  # type: ignore[assignment]
    "nsca_connection_state",
    "Current session state",
    ["server", "state"],
)

nsca_field_truncated_total: Final = Counter(  # type: ignore[assignment]
    "nsca_field_truncated_total",
    "Total text fields truncated to their wire width",
    ["field"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()

CONNECTION_STATES: Final = ("disconnected", "connected")


def start_metrics_server(port: int = 9667) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_message(server: str, outcome: str) -> None:
    """Record a processed check message."""
    nsca_messages_total.labels(server=server, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_send_latency(server: str, latency_seconds: float) -> None:
    """Record per-message delivery latency."""
    nsca_send_latency_seconds.labels(server=server).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_connect(server: str, outcome: str) -> None:
    """Record a connect attempt."""
    nsca_connect_total.labels(server=server, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_session_close(server: str, reason: str) -> None:
    """Record a session teardown."""
    nsca_session_close_total.labels(server=server, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_connection_state(server: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in CONNECTION_STATES:
        value = 1 if s == state else 0
        nsca_connection_state.labels(server=server, state=s).set(value)  # type: ignore[no-untyped-call]


def record_field_truncated(field: str) -> None:
    """Record a text field cut to its wire width."""
    nsca_field_truncated_total.labels(field=field).inc()  # type: ignore[no-untyped-call]
