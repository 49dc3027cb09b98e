"""Core value types for the NSCA transport layer.

This module defines the connection settings handed to a session, the check
messages fed to the endpoint runner, and the per-message result reported
back to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nsca_client.protocol.packet_types import (
    MAX_PLUGINOUTPUT_LENGTH,
    SUPPORTED_OUTPUT_LENGTHS,
    CheckState,
)

DEFAULT_NSCA_PORT = 5667


class ServerConnectInfo(BaseModel):
    """Connection settings for one NSCA acceptor.

    Immutable; supplied to every connect attempt.

    Attributes:
        host: Acceptor host name or IP ("" means localhost)
        port: Acceptor TCP port
        encryption_method: Method code shared with the acceptor
        password: Shared password used to derive the key
        timeout: Connect/read/write deadline in seconds (0 disables deadlines)
        max_output_length: Plugin output width the acceptor was built with

    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(default=DEFAULT_NSCA_PORT, ge=1, le=65535)
    encryption_method: int = Field(default=0, ge=0)
    password: str = Field(default="", repr=False)
    timeout: float = Field(default=0.0, ge=0.0)
    max_output_length: int = MAX_PLUGINOUTPUT_LENGTH

    @field_validator("host")
    @classmethod
    def _default_host(cls, value: str) -> str:
        return value.strip() or "localhost"

    @field_validator("max_output_length")
    @classmethod
    def _known_output_length(cls, value: int) -> int:
        if value not in SUPPORTED_OUTPUT_LENGTHS:
            msg = f"max_output_length must be one of {SUPPORTED_OUTPUT_LENGTHS}"
            raise ValueError(msg)
        return value

    @property
    def deadline(self) -> float | None:
        """Timeout in the form asyncio.wait_for expects."""
        return self.timeout if self.timeout > 0 else None

    @property
    def address(self) -> str:
        """host:port label used in logs and metrics."""
        return f"{self.host}:{self.port}"


@dataclass
class SendResult:
    """Outcome of delivering one check message.

    Attributes:
        success: Whether the packet was written to the acceptor
        correlation_id: Correlation ID the message was processed under
        reason: Error reason if success=False (empty string if success=True)
        error: The exception that caused the failure, if any

    """

    success: bool
    correlation_id: str
    reason: str = ""
    error: Exception | None = None


ResultCallback = Callable[[SendResult], Awaitable[None] | None]
ResultSink = asyncio.Future[SendResult] | ResultCallback


# Standard dataclass rather than pydantic: the result sink is a live
# asyncio object and needs no validation
@dataclass
class CheckMessage:
    """One passive check result to submit.

    Attributes:
        state: Check state (OK/WARNING/CRITICAL/UNKNOWN)
        host: Host name the result belongs to
        service: Service description ("" for a host check)
        output: Plugin output text
        result: Optional single-use sink for the delivery outcome. A future
            is resolved without blocking the runner; a callback (plain or
            async) is called and awaited, so a slow callback stalls the
            runner.

    """

    state: CheckState | int
    host: str
    service: str = ""
    output: str = ""
    result: ResultSink | None = None

    @property
    def is_host_check(self) -> bool:
        """True when no service is attached."""
        return not self.service
