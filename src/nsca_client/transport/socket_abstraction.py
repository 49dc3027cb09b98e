"""Asyncio TCP socket abstraction with deadlines and instrumentation."""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class TCPConnection:
    """Async TCP connection with optional timeouts and instrumentation.

    Methods report failure through their return value and keep the reason in
    ``last_error``; callers turn that into typed exceptions.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float | None = None,
        io_timeout: float | None = None,
    ):
        """
        Initialize TCP connection parameters.

        Args:
            host: Target host
            port: Target port
            connect_timeout: Connection timeout in seconds (None: wait forever)
            io_timeout: Read/write timeout in seconds (None: wait forever)
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.last_error: str = ""
        self._connected = False

    async def connect(self) -> bool:
        """
        Establish TCP connection with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        start_time = time.perf_counter()
        try:
            logger.info(
                "Connecting to %s:%d (timeout: %s)",
                self.host,
                self.port,
                self.connect_timeout,
                extra={"host": self.host, "port": self.port, "timeout": self.connect_timeout},
            )
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._connected = True
            self.last_error = ""
            logger.info(
                "Connected to %s:%d in %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
            )
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = "connect timeout"
            logger.warning(
                "Connection to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": "timeout",
                },
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "Connection to %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": str(e),
                },
            )
            return False
        else:
            return True

    async def send(self, data: bytes) -> bool:
        """
        Write the whole buffer and wait for it to drain, with timeout.

        Args:
            data: Bytes to send

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._connected or not self.writer:
            self.last_error = "not connected"
            logger.error(
                "Cannot send: not connected",
                extra={"host": self.host, "port": self.port},
            )
            return False

        start_time = time.perf_counter()
        try:
            logger.debug(
                "Sending %d bytes to %s:%d",
                len(data),
                self.host,
                self.port,
                extra={"bytes": len(data), "host": self.host, "port": self.port},
            )
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.io_timeout)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                "Sent %d bytes to %s:%d in %.1fms",
                len(data),
                self.host,
                self.port,
                elapsed_ms,
                extra={
                    "bytes": len(data),
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                },
            )
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = "write timeout"
            logger.warning(
                "Send to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": "timeout",
                },
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "Send to %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": str(e),
                },
            )
            return False
        else:
            return True

    async def recv_exactly(self, num_bytes: int) -> bytes | None:
        """
        Read exactly ``num_bytes`` bytes with timeout.

        A short read (peer closed early) counts as a failure; the partial
        data is discarded.

        Args:
            num_bytes: Number of bytes to read

        Returns:
            Received bytes, or None on error/timeout/early close
        """
        if not self._connected or not self.reader:
            self.last_error = "not connected"
            logger.error(
                "Cannot receive: not connected",
                extra={"host": self.host, "port": self.port},
            )
            return None

        start_time = time.perf_counter()
        try:
            logger.debug(
                "Receiving %d bytes from %s:%d",
                num_bytes,
                self.host,
                self.port,
                extra={"num_bytes": num_bytes, "host": self.host, "port": self.port},
            )
            data = await asyncio.wait_for(
                self.reader.readexactly(num_bytes),
                timeout=self.io_timeout,
            )
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                "Received %d bytes from %s:%d in %.1fms",
                len(data),
                self.host,
                self.port,
                elapsed_ms,
                extra={
                    "bytes": len(data),
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                },
            )
        except asyncio.IncompleteReadError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = f"connection closed after {len(e.partial)} of {num_bytes} bytes"
            logger.warning(
                "Connection closed by %s:%d after %.1fms (%d of %d bytes)",
                self.host,
                self.port,
                elapsed_ms,
                len(e.partial),
                num_bytes,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
            )
            self._connected = False
            return None
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = "read timeout"
            logger.warning(
                "Receive from %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": "timeout",
                },
            )
            return None
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "Receive from %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={
                    "host": self.host,
                    "port": self.port,
                    "elapsed_ms": elapsed_ms,
                    "error": str(e),
                },
            )
            return None
        else:
            return data

    async def close(self) -> None:
        """Close the connection. Safe to call repeatedly."""
        if self.writer:
            logger.info(
                "Closing connection to %s:%d",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port},
            )
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except (OSError, ConnectionError) as e:
                logger.warning(
                    "Error closing connection: %s",
                    e,
                    extra={
                        "host": self.host,
                        "port": self.port,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                self._connected = False
                self.writer = None
                self.reader = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self._connected

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.host}:{self.port}, {status})"
