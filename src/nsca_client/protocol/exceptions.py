"""Custom exception types for NSCA protocol errors.

This module defines the root of the exception hierarchy. Errors raise
exceptions instead of returning None; transport-level errors extend
NSCAError in nsca_client.transport.exceptions.
"""

from __future__ import annotations


class NSCAError(Exception):
    """Base exception for all NSCA client errors.

    All client exceptions inherit from this base class, enabling catch-all
    error handling when needed while maintaining specific exception types
    for detailed handling.
    """


class PacketDecodeError(NSCAError):
    """Packet cannot be decoded.

    Raised when a packet from the acceptor (or a packet handed to the peer-side
    decoder) is malformed: wrong size, bad version, or checksum mismatch.

    Attributes:
        reason: Specific failure reason (e.g., "too_short", "invalid_checksum")
        data_preview: First 16 bytes of packet data (security: prevents IV/password leakage)
    """

    def __init__(self, reason: str, data: bytes = b"") -> None:
        self.reason: str = reason
        # Security: Only store first 16 bytes to prevent key material leaking into logs/tracebacks
        self.data_preview: bytes = data[:16] if data else b""
        super().__init__(f"Packet decode failed: {reason}")


class NSCAConfigurationError(NSCAError):
    """Encryption method or password cannot be used.

    Raised while resolving the encryption strategy, before any network I/O:
    - Unknown encryption method code
    - Method known to NSCA but not available in this client
    - Password that derives an unusable key (e.g. degenerate 3DES key)
    - Invalid connection settings

    Attributes:
        reason: Specific failure reason
        method: Encryption method code involved (None when not method related)
    """

    def __init__(self, reason: str, method: int | None = None) -> None:
        self.reason: str = reason
        self.method: int | None = method
        if method is None:
            super().__init__(f"Configuration error: {reason}")
        else:
            super().__init__(f"Configuration error: {reason} (method: {method})")


class NSCAValidationError(NSCAError):
    """Check result value is outside what the data packet can carry.

    Oversized text is not an error (fields are truncated to their wire
    width); this is raised for values that cannot be represented at all,
    such as a state code outside OK/WARNING/CRITICAL/UNKNOWN.

    Attributes:
        reason: Specific failure reason
        field: Name of the offending field
    """

    def __init__(self, reason: str, field: str) -> None:
        self.reason: str = reason
        self.field: str = field
        super().__init__(f"Validation failed for {field}: {reason}")
