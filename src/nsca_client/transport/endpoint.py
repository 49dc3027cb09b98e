"""Long-lived NSCA endpoint: a single task that owns one session.

The runner pulls check messages from an asyncio.Queue, one at a time and in
arrival order, and pushes each one through its NSCASession:

    IDLE ──message──> connect ──ok──> send ──ok──> ACTIVE (connection kept)
      ^                  │                │
      └──── close <──────┴──── error ─────┘

- A failed connect or send is reported on the message's result sink, then
  the session is closed; the next message is the retry opportunity.
- A message is never retried by the runner itself.
- The stop event (or cancelling the task) ends the loop; the session is
  always closed on the way out. Messages still queued at that point, and any
  submitted to the queue afterwards, are reported as ``endpoint_stopped``.

Result delivery is synchronous from the runner's point of view. Future sinks
are resolved immediately and never block. Callback sinks are awaited, so a
slow callback stalls the runner and every message queued behind it; this is
the backpressure contract for callers that need it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import weakref
from collections.abc import Awaitable, Callable
from enum import Enum

from nsca_client.correlation import correlation_context
from nsca_client.metrics import registry
from nsca_client.protocol.exceptions import NSCAConfigurationError, NSCAError, NSCAValidationError
from nsca_client.transport.exceptions import NSCAConnectError, NSCATransportError
from nsca_client.transport.session import NSCASession
from nsca_client.transport.types import CheckMessage, SendResult, ServerConnectInfo

logger = logging.getLogger(__name__)

STOPPED_REASON = "endpoint_stopped"

# Queues whose runner has exited; submit() fails fast on these
_stopped_queues: weakref.WeakSet[asyncio.Queue[CheckMessage]] = weakref.WeakSet()


class RunnerState(Enum):
    """Endpoint runner state enumeration."""

    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


def _outcome_label(error: Exception | None) -> str:
    if error is None:
        return "success"
    if isinstance(error, NSCAConfigurationError):
        return "config_error"
    if isinstance(error, NSCAConnectError):
        return "connect_error"
    if isinstance(error, NSCAValidationError):
        return "validation_error"
    if isinstance(error, NSCATransportError):
        return "transport_error"
    return "unexpected_error"


def _reason(error: Exception) -> str:
    reason = getattr(error, "reason", None)
    return reason if isinstance(reason, str) and reason else str(error) or type(error).__name__


def stopped_result() -> SendResult:
    """Outcome reported for a message the runner will never send."""
    return SendResult(
        success=False,
        correlation_id="",
        reason=STOPPED_REASON,
        error=NSCATransportError(STOPPED_REASON),
    )


class EndpointRunner:
    """Single-owner actor multiplexing check messages onto one connection.

    Nothing else may touch ``session`` while ``run`` is active; exclusivity
    comes from the queue, not from locks.
    """

    def __init__(
        self,
        connect_info: ServerConnectInfo,
        messages: asyncio.Queue[CheckMessage],
        stop: asyncio.Event,
        session: NSCASession | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            connect_info: Acceptor settings, used for every (re)connect
            messages: Inbound FIFO of check messages
            stop: Set to end the runner after the in-flight message
            session: Session to own (defaults to a new NSCASession)

        """
        self.connect_info: ServerConnectInfo = connect_info
        self.messages: asyncio.Queue[CheckMessage] = messages
        self.stop: asyncio.Event = stop
        self.session: NSCASession = session or NSCASession()
        self._stopped: bool = False

    @property
    def state(self) -> RunnerState:
        """Current runner state."""
        if self._stopped:
            return RunnerState.STOPPED
        return RunnerState.ACTIVE if self.session.is_connected else RunnerState.IDLE

    async def run(self) -> None:
        """Process messages until the stop event fires or the task is cancelled."""
        logger.info(
            "Endpoint runner started for %s",
            self.connect_info.address,
            extra={"server": self.connect_info.address},
        )
        _stopped_queues.discard(self.messages)
        try:
            while True:
                message = await self._next_message()
                if message is None:
                    break
                try:
                    await self.process(message)
                finally:
                    self.messages.task_done()
        finally:
            await self.session.close(reason="stopped")
            self._stopped = True
            _stopped_queues.add(self.messages)
            abandoned = await self._drain()
            logger.info(
                "Endpoint runner stopped for %s",
                self.connect_info.address,
                extra={"server": self.connect_info.address, "abandoned": abandoned},
            )

    async def _drain(self) -> int:
        """Report every message still queued as stopped. Returns the count."""
        count = 0
        while True:
            try:
                message = self.messages.get_nowait()
            except asyncio.QueueEmpty:
                return count
            try:
                await self._deliver(message, stopped_result())
            finally:
                self.messages.task_done()
            count += 1

    async def _next_message(self) -> CheckMessage | None:
        """Wait for the next message or the stop event, whichever comes first."""
        if self.stop.is_set():
            return None

        get_task = asyncio.ensure_future(self.messages.get())
        stop_task = asyncio.ensure_future(self.stop.wait())
        try:
            done, _ = await asyncio.wait({get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (get_task, stop_task):
                if not task.done():
                    task.cancel()

        if stop_task not in done:
            return get_task.result()

        # Stop won the race; a message dequeued in the same wakeup is reported, not sent
        if get_task in done and not get_task.cancelled():
            message = get_task.result()
            await self._deliver(message, stopped_result())
            self.messages.task_done()
        return None

    async def process(self, message: CheckMessage) -> SendResult:
        """Connect if needed, send, report the outcome, tear down on failure."""
        with correlation_context() as correlation_id:
            start_time = time.perf_counter()
            error: Exception | None = None

            if not self.session.is_connected:
                error = await self._attempt(self.session.connect, self.connect_info)
            if error is None:
                error = await self._attempt(self.session.send, message)

            elapsed = time.perf_counter() - start_time
            server = self.connect_info.address
            registry.record_message(server, _outcome_label(error))
            registry.record_send_latency(server, elapsed)

            if error is None:
                result = SendResult(success=True, correlation_id=correlation_id or "")
            else:
                result = SendResult(
                    success=False,
                    correlation_id=correlation_id or "",
                    reason=_reason(error),
                    error=error,
                )
                logger.warning(
                    "Delivery of %s/%s to %s failed: %s",
                    message.host,
                    message.service or "-",
                    server,
                    error,
                    extra={
                        "server": server,
                        "check_host": message.host,
                        "service": message.service,
                        "error_type": type(error).__name__,
                    },
                )

            await self._deliver(message, result)

            if error is not None:
                await self.session.close(reason=_outcome_label(error))

            return result

    async def _attempt(
        self,
        operation: Callable[..., Awaitable[None]],
        *args: object,
    ) -> Exception | None:
        """Run one session operation and capture its failure."""
        try:
            await operation(*args)
        except NSCAError as e:
            return e
        except Exception as e:
            # The runner must outlive any single message
            logger.exception(
                "Unexpected error in %s",
                getattr(operation, "__name__", "operation"),
                extra={"server": self.connect_info.address, "error_type": type(e).__name__},
            )
            return e
        return None

    async def _deliver(self, message: CheckMessage, result: SendResult) -> None:
        """Hand the outcome to the message's sink, exactly once."""
        sink = message.result
        if sink is None:
            return

        if isinstance(sink, asyncio.Future):
            if sink.done():
                logger.warning(
                    "Result sink for %s/%s was already resolved or cancelled",
                    message.host,
                    message.service or "-",
                    extra={"check_host": message.host, "success": result.success},
                )
                return
            sink.set_result(result)
            return

        try:
            outcome = sink(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(
                "Result callback for %s/%s raised",
                message.host,
                message.service or "-",
                extra={"check_host": message.host},
            )


async def run_endpoint(
    connect_info: ServerConnectInfo,
    stop: asyncio.Event,
    messages: asyncio.Queue[CheckMessage],
) -> None:
    """Run a long-lived endpoint until ``stop`` is set.

    Handles its own connection setup, cleanup and reconnection. Any number
    of producer tasks may put messages on the queue.
    """
    runner = EndpointRunner(connect_info, messages, stop)
    await runner.run()


async def submit(messages: asyncio.Queue[CheckMessage], message: CheckMessage) -> SendResult:
    """Queue a message with a fresh future sink and wait for its outcome.

    A queue whose runner has already stopped yields a stopped result at once.
    """
    if messages in _stopped_queues:
        return stopped_result()
    loop = asyncio.get_running_loop()
    future: asyncio.Future[SendResult] = loop.create_future()
    message.result = future
    await messages.put(message)
    return await future
