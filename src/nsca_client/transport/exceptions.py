"""Custom exception types for transport layer errors.

This module defines the exception hierarchy for connection and delivery
errors, extending the protocol exceptions.
"""

from __future__ import annotations

from nsca_client.protocol.exceptions import NSCAError


class NSCAConnectError(NSCAError):
    """Connecting to the acceptor failed (dial or handshake).

    Raised when:
    - DNS resolution, TCP connect or connect timeout fails
    - The initialization packet cannot be read or parsed

    The partially opened connection is always closed before this is raised.

    Note: Named NSCAConnectError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        reason: Specific failure reason
        state: Session state when error occurred

    """

    def __init__(self, reason: str, state: str = "disconnected") -> None:
        """Initialize connect error with reason and state."""
        self.reason: str = reason
        self.state: str = state
        super().__init__(f"Connect failed: {reason} (state: {state})")


class HandshakeError(NSCAConnectError):
    """Initialization packet missing or malformed.

    Raised when:
    - The acceptor closes before sending the full 132 bytes
    - The read deadline expires
    - Socket error during the read
    - The packet cannot be parsed

    Attributes:
        reason: Specific failure reason
        state: Session state when error occurred

    """

    def __init__(self, reason: str, state: str = "disconnected") -> None:
        """Initialize handshake error with reason and state."""
        super().__init__(f"handshake failed: {reason}", state)
        self.reason = reason


class NSCATransportError(NSCAError):
    """Writing a data packet on an established connection failed.

    Raised when:
    - Socket error during write
    - Write deadline exceeded

    The session must be closed before it is used again.

    Attributes:
        reason: Specific failure reason

    """

    def __init__(self, reason: str) -> None:
        """Initialize transport error with reason."""
        self.reason: str = reason
        super().__init__(f"Send failed: {reason}")


class NSCANotConnectedError(NSCATransportError):
    """Send attempted on a session with no live connection.

    No network I/O is performed before this is raised.
    """

    def __init__(self, reason: str = "not connected") -> None:
        """Initialize not-connected error."""
        super().__init__(reason)
