"""In-memory stand-ins for the TCP connection and the session."""

from __future__ import annotations

import asyncio

from nsca_client.protocol.nsca_protocol import NSCAProtocol
from nsca_client.protocol.packet_types import TRANSMITTED_IV_SIZE
from nsca_client.transport.exceptions import NSCAConnectError, NSCATransportError
from nsca_client.transport.session import SessionState
from nsca_client.transport.types import CheckMessage, ServerConnectInfo

DEFAULT_IV = bytes(range(TRANSMITTED_IV_SIZE))
DEFAULT_TIMESTAMP = 1_700_000_000


class FakeConnection:
    """Scriptable replacement for TCPConnection.

    ``init_packet`` is what ``recv_exactly`` returns (None simulates an early
    close). ``sent`` collects every buffer passed to ``send``.
    """

    def __init__(
        self,
        *,
        connect_ok: bool = True,
        init_packet: bytes | None = None,
        send_ok: bool = True,
    ) -> None:
        self.connect_ok = connect_ok
        self.init_packet = (
            init_packet if init_packet is not None else NSCAProtocol.encode_init_packet(DEFAULT_IV, DEFAULT_TIMESTAMP)
        )
        self.send_ok = send_ok
        self.sent: list[bytes] = []
        self.last_error = ""
        self.connect_calls = 0
        self.recv_calls = 0
        self.close_calls = 0
        self._connected = False

    async def connect(self) -> bool:
        self.connect_calls += 1
        if not self.connect_ok:
            self.last_error = "Connection refused"
            return False
        self._connected = True
        return True

    async def recv_exactly(self, num_bytes: int) -> bytes | None:
        self.recv_calls += 1
        if self.init_packet is None or len(self.init_packet) < num_bytes:
            self.last_error = "connection closed"
            return None
        return self.init_packet[:num_bytes]

    async def send(self, data: bytes) -> bool:
        if not self.send_ok:
            self.last_error = "Broken pipe"
            return False
        self.sent.append(data)
        return True

    async def close(self) -> None:
        self.close_calls += 1
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected


class ConnectionFactoryStub:
    """Hands out pre-built FakeConnections and records the dial arguments."""

    def __init__(self, *connections: FakeConnection) -> None:
        self._pending = list(connections)
        self.created: list[FakeConnection] = []
        self.calls: list[tuple[str, int, float | None]] = []

    def __call__(self, host: str, port: int, timeout: float | None) -> FakeConnection:
        self.calls.append((host, port, timeout))
        conn = self._pending.pop(0) if self._pending else FakeConnection()
        self.created.append(conn)
        return conn


class ScriptedSession:
    """Session double for runner tests.

    ``fail_sends`` holds 1-based send numbers that raise a transport error;
    ``fail_connects`` does the same for connect attempts.
    """

    def __init__(
        self,
        *,
        fail_sends: set[int] | None = None,
        fail_connects: set[int] | None = None,
        send_delay: float = 0.0,
    ) -> None:
        self.fail_sends = fail_sends or set()
        self.fail_connects = fail_connects or set()
        self.send_delay = send_delay
        self.state = SessionState.DISCONNECTED
        self.connect_count = 0
        self.send_count = 0
        self.sent: list[CheckMessage] = []
        self.close_reasons: list[str] = []

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    async def connect(self, info: ServerConnectInfo) -> None:  # noqa: ARG002
        self.connect_count += 1
        if self.connect_count in self.fail_connects:
            raise NSCAConnectError("Connection refused")
        self.state = SessionState.CONNECTED

    async def send(self, message: CheckMessage) -> None:
        self.send_count += 1
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.send_count in self.fail_sends:
            raise NSCATransportError("Broken pipe")
        self.sent.append(message)

    async def close(self, reason: str = "requested") -> None:
        self.close_reasons.append(reason)
        self.state = SessionState.DISCONNECTED
