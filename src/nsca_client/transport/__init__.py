"""NSCA transport package - TCP connection, session and endpoint runner."""

from nsca_client.transport.endpoint import EndpointRunner, RunnerState, run_endpoint, submit
from nsca_client.transport.exceptions import (
    HandshakeError,
    NSCAConnectError,
    NSCANotConnectedError,
    NSCATransportError,
)
from nsca_client.transport.session import NSCASession, SessionState, read_initialization_packet, transmit
from nsca_client.transport.socket_abstraction import TCPConnection
from nsca_client.transport.types import CheckMessage, SendResult, ServerConnectInfo

__all__ = [
    # Endpoint runner
    "EndpointRunner",
    "RunnerState",
    "run_endpoint",
    "submit",
    # Session
    "NSCASession",
    "SessionState",
    "TCPConnection",
    "read_initialization_packet",
    "transmit",
    # Exceptions
    "HandshakeError",
    "NSCAConnectError",
    "NSCANotConnectedError",
    "NSCATransportError",
    # Types
    "CheckMessage",
    "SendResult",
    "ServerConnectInfo",
]
