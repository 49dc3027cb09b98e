"""Unit tests for metrics registry."""

from __future__ import annotations

from unittest.mock import patch

from nsca_client.metrics import registry


def _sample_value(metric: object, name: str, labels: dict[str, str]) -> float | None:
    for family in metric.collect():  # type: ignore[attr-defined]
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return float(sample.value)
    return None


class TestMessageMetrics:
    """Tests for per-message metrics."""

    def test_record_message(self) -> None:
        labels = {"server": "metrics-host:5667", "outcome": "success"}
        before = _sample_value(registry.nsca_messages_total, "nsca_messages_total", labels) or 0.0
        registry.record_message("metrics-host:5667", "success")
        after = _sample_value(registry.nsca_messages_total, "nsca_messages_total", labels)
        assert after == before + 1

    def test_record_send_latency(self) -> None:
        registry.record_send_latency("metrics-host:5667", 0.003)
        count = _sample_value(
            registry.nsca_send_latency_seconds,
            "nsca_send_latency_seconds_count",
            {"server": "metrics-host:5667"},
        )
        assert count is not None
        assert count >= 1

    def test_record_field_truncated(self) -> None:
        registry.record_field_truncated("output")
        samples = list(registry.nsca_field_truncated_total.collect()[0].samples)
        assert any(s.labels == {"field": "output"} for s in samples)


class TestConnectionMetrics:
    """Tests for connection metrics."""

    def test_record_connect(self) -> None:
        registry.record_connect("metrics-host:5667", "dial_failed")
        samples = list(registry.nsca_connect_total.collect()[0].samples)
        assert any(s.labels == {"server": "metrics-host:5667", "outcome": "dial_failed"} for s in samples)

    def test_record_session_close(self) -> None:
        registry.record_session_close("metrics-host:5667", "transport_error")
        samples = list(registry.nsca_session_close_total.collect()[0].samples)
        assert any(s.labels == {"server": "metrics-host:5667", "reason": "transport_error"} for s in samples)

    def test_record_connection_state_is_one_hot(self) -> None:
        registry.record_connection_state("state-host:5667", "connected")
        registry.record_connection_state("state-host:5667", "disconnected")

        assert (
            _sample_value(
                registry.nsca_connection_state,
                "nsca_connection_state",
                {"server": "state-host:5667", "state": "disconnected"},
            )
            == 1
        )
        assert (
            _sample_value(
                registry.nsca_connection_state,
                "nsca_connection_state",
                {"server": "state-host:5667", "state": "connected"},
            )
            == 0
        )


def test_start_metrics_server_is_idempotent() -> None:
    with (
        patch.object(registry, "start_http_server") as mock_start,
        patch.dict(registry._server_state, {"started": False}),  # noqa: SLF001
    ):
        registry.start_metrics_server(9999)
        registry.start_metrics_server(9999)

    mock_start.assert_called_once_with(9999)
