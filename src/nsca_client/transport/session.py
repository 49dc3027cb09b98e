"""Connection session: one TCP connection plus its negotiated cipher state.

NSCASession is the lower-level alternative to the endpoint runner. It is a
two-state machine (DISCONNECTED, CONNECTED) and is NOT safe to share between
tasks; the endpoint runner owns exactly one instance.

Connect sequence:
1. Resolve the encryption method and derive the key (no I/O yet)
2. Dial the acceptor (bounded by the timeout when set)
3. Read the initialization packet (IV + timestamp)
4. Bind a fresh EncryptionContext to the IV

Send sequence:
1. Build the data packet with the echoed timestamp
2. Finalize (CRC-32 written into the zeroed slot)
3. Encrypt the whole buffer and write it in one operation
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from types import TracebackType

from nsca_client.metrics import registry
from nsca_client.protocol.encryption import EncryptionContext, prepare_cipher
from nsca_client.protocol.exceptions import NSCAError, PacketDecodeError
from nsca_client.protocol.nsca_protocol import NSCAProtocol
from nsca_client.protocol.packet_types import INIT_PACKET_SIZE, MAX_PLUGINOUTPUT_LENGTH, InitializationPacket
from nsca_client.transport.exceptions import (
    HandshakeError,
    NSCAConnectError,
    NSCANotConnectedError,
    NSCATransportError,
)
from nsca_client.transport.socket_abstraction import TCPConnection
from nsca_client.transport.types import CheckMessage, ServerConnectInfo

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str, int, float | None], TCPConnection]


class SessionState(Enum):
    """Session state enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def _default_connection_factory(host: str, port: int, timeout: float | None) -> TCPConnection:
    return TCPConnection(host, port, connect_timeout=timeout, io_timeout=timeout)


async def read_initialization_packet(conn: TCPConnection) -> InitializationPacket:
    """Read and parse the acceptor's initialization packet.

    Exactly one read attempt; the caller closes the connection on failure.

    Raises:
        HandshakeError: On short read, early close, timeout or I/O error

    """
    data = await conn.recv_exactly(INIT_PACKET_SIZE)
    if data is None:
        raise HandshakeError(conn.last_error or "no initialization packet")
    try:
        return NSCAProtocol.decode_init_packet(data)
    except PacketDecodeError as e:
        raise HandshakeError(e.reason) from e


async def transmit(packet: bytes, context: EncryptionContext, conn: TCPConnection) -> None:
    """Encrypt a finalized packet and write it as one unit.

    The write deadline is the connection's io_timeout.

    Raises:
        NSCATransportError: If the write fails or times out

    """
    payload = context.encrypt(packet)
    if not await conn.send(payload):
        raise NSCATransportError(conn.last_error or "write failed")


class NSCASession:
    """Owns one acceptor connection, its EncryptionContext and timestamp."""

    def __init__(self, connection_factory: ConnectionFactory | None = None) -> None:
        """Initialize a disconnected session.

        Args:
            connection_factory: Builds the TCPConnection for a connect attempt
                (host, port, timeout). Defaults to a plain TCPConnection.

        """
        self._connection_factory: ConnectionFactory = connection_factory or _default_connection_factory
        self.state: SessionState = SessionState.DISCONNECTED
        self.conn: TCPConnection | None = None
        self.encryption: EncryptionContext | None = None
        self.server_timestamp: int = 0
        self.timeout: float | None = None
        self.max_output_length: int = MAX_PLUGINOUTPUT_LENGTH
        self.server: str = ""

    @property
    def is_connected(self) -> bool:
        """True while a connection and its cipher state are held."""
        return self.state == SessionState.CONNECTED

    async def connect(self, info: ServerConnectInfo) -> None:
        """Dial the acceptor, run the handshake and derive a fresh context.

        On failure the partially opened connection is closed and the session
        keeps its previous state. On success any previous connection is
        released and replaced.

        Raises:
            NSCAConfigurationError: Unusable method or password (before any I/O)
            NSCAConnectError: Dial failure
            HandshakeError: Initialization packet missing or malformed

        """
        suite = prepare_cipher(info.encryption_method, info.password)

        conn = self._connection_factory(info.host, info.port, info.deadline)
        if not await conn.connect():
            await conn.close()
            registry.record_connect(info.address, "dial_failed")
            raise NSCAConnectError(conn.last_error or "dial failed", self.state.value)

        try:
            init_packet = await read_initialization_packet(conn)
            encryption = suite.bind(init_packet.iv)
        except BaseException as e:
            await conn.close()
            if isinstance(e, NSCAError):
                registry.record_connect(info.address, "handshake_failed")
            raise

        await self._release()
        self.conn = conn
        self.encryption = encryption
        self.server_timestamp = init_packet.timestamp
        self.timeout = info.deadline
        self.max_output_length = info.max_output_length
        self.server = info.address
        self.state = SessionState.CONNECTED

        registry.record_connect(info.address, "success")
        registry.record_connection_state(info.address, SessionState.CONNECTED.value)
        logger.info(
            "Session connected to %s (%s, server timestamp %d)",
            info.address,
            suite.method.name,
            init_packet.timestamp,
            extra={
                "server": info.address,
                "method": int(suite.method),
                "server_timestamp": init_packet.timestamp,
            },
        )

    async def send(self, message: CheckMessage) -> None:
        """Build, finalize, encrypt and write one data packet.

        After any failure the session must be closed before reuse.

        Raises:
            NSCANotConnectedError: No live connection (no I/O performed)
            NSCAValidationError: State code cannot be encoded
            NSCATransportError: Write failed or timed out

        """
        if self.state != SessionState.CONNECTED or self.conn is None or self.encryption is None:
            raise NSCANotConnectedError

        packet = NSCAProtocol.build_data_packet(
            self.server_timestamp,
            message.state,
            message.host,
            message.service,
            message.output,
            max_output_length=self.max_output_length,
        )
        await transmit(NSCAProtocol.finalize(packet), self.encryption, self.conn)

        logger.debug(
            "Sent check for %s/%s to %s",
            message.host,
            message.service or "-",
            self.server,
            extra={"server": self.server, "check_host": message.host, "service": message.service},
        )

    async def close(self, reason: str = "requested") -> None:
        """Release the connection and clear cipher state. Idempotent."""
        if self.state == SessionState.CONNECTED:
            registry.record_session_close(self.server, reason)
            registry.record_connection_state(self.server, SessionState.DISCONNECTED.value)
            logger.info(
                "Closing session to %s (%s)",
                self.server,
                reason,
                extra={"server": self.server, "reason": reason},
            )
        await self._release()

    async def _release(self) -> None:
        conn = self.conn
        self.conn = None
        self.encryption = None
        self.server_timestamp = 0
        self.timeout = None
        self.state = SessionState.DISCONNECTED
        if conn is not None:
            await conn.close()

    async def __aenter__(self) -> NSCASession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"NSCASession({self.server or '-'}, {self.state.value})"
