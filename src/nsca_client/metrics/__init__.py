"""Metrics module."""

from .registry import (
    record_connect,
    record_connection_state,
    record_field_truncated,
    record_message,
    record_send_latency,
    record_session_close,
    start_metrics_server,
)

__all__ = [
    "record_connect",
    "record_connection_state",
    "record_field_truncated",
    "record_message",
    "record_send_latency",
    "record_session_close",
    "start_metrics_server",
]
