"""Unit tests for transport layer exceptions."""

from __future__ import annotations

from nsca_client.protocol.exceptions import NSCAError
from nsca_client.transport.exceptions import (
    HandshakeError,
    NSCAConnectError,
    NSCANotConnectedError,
    NSCATransportError,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_all_exceptions_inherit_from_nsca_error(self):
        """Every transport exception can be caught as NSCAError."""
        assert issubclass(NSCAConnectError, NSCAError)
        assert issubclass(HandshakeError, NSCAConnectError)
        assert issubclass(NSCATransportError, NSCAError)
        assert issubclass(NSCANotConnectedError, NSCATransportError)

    def test_connect_and_transport_are_distinct(self):
        assert not issubclass(NSCAConnectError, NSCATransportError)
        assert not issubclass(NSCATransportError, NSCAConnectError)


class TestNSCAConnectError:
    """Tests for NSCAConnectError."""

    def test_defaults_to_disconnected_state(self):
        error = NSCAConnectError(reason="Connection refused")
        assert error.reason == "Connection refused"
        assert error.state == "disconnected"
        assert str(error) == "Connect failed: Connection refused (state: disconnected)"

    def test_with_state(self):
        error = NSCAConnectError(reason="dial failed", state="connected")
        assert error.state == "connected"
        assert "connected" in str(error)


class TestHandshakeError:
    """Tests for HandshakeError."""

    def test_reason_is_bare(self):
        """The message is prefixed, the reason attribute is not."""
        error = HandshakeError(reason="read timeout")
        assert error.reason == "read timeout"
        assert "handshake failed: read timeout" in str(error)


class TestNSCATransportError:
    """Tests for send-side errors."""

    def test_transport_error(self):
        error = NSCATransportError(reason="write timeout")
        assert error.reason == "write timeout"
        assert str(error) == "Send failed: write timeout"

    def test_not_connected_default_reason(self):
        error = NSCANotConnectedError()
        assert error.reason == "not connected"
