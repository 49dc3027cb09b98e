"""Unit tests for the endpoint runner."""

from __future__ import annotations

import asyncio

import pytest

from nsca_client.transport.endpoint import STOPPED_REASON, EndpointRunner, RunnerState, submit
from nsca_client.transport.exceptions import NSCAConnectError, NSCATransportError
from nsca_client.transport.types import CheckMessage, SendResult, ServerConnectInfo
from tests.helpers.fakes import ScriptedSession

INFO = ServerConnectInfo(host="nagios")


class RunnerHarness:
    """Runs an EndpointRunner over a ScriptedSession in a background task."""

    def __init__(self, session: ScriptedSession) -> None:
        self.session = session
        self.messages: asyncio.Queue[CheckMessage] = asyncio.Queue()
        self.stop = asyncio.Event()
        self.runner = EndpointRunner(INFO, self.messages, self.stop, session=session)  # type: ignore[arg-type]
        self.task: asyncio.Task[None] | None = None

    def start(self) -> None:
        self.task = asyncio.create_task(self.runner.run())

    async def send_all(self, count: int) -> list[SendResult]:
        return [await submit(self.messages, CheckMessage(0, f"host{i}", "svc", "ok")) for i in range(1, count + 1)]

    async def shutdown(self) -> None:
        self.stop.set()
        assert self.task is not None
        await asyncio.wait_for(self.task, timeout=1)


@pytest.fixture
async def harness_factory():
    harnesses: list[RunnerHarness] = []

    def factory(session: ScriptedSession | None = None) -> RunnerHarness:
        harness = RunnerHarness(session or ScriptedSession())
        harness.start()
        harnesses.append(harness)
        return harness

    yield factory

    for harness in harnesses:
        if harness.task is not None and not harness.task.done():
            await harness.shutdown()


class TestDelivery:
    """Tests for per-message processing."""

    async def test_messages_reuse_one_connection(self, harness_factory) -> None:
        harness = harness_factory()

        results = await harness.send_all(3)

        assert [r.success for r in results] == [True, True, True]
        assert harness.session.connect_count == 1
        assert harness.runner.state == RunnerState.ACTIVE

    async def test_failed_send_then_lazy_reconnect(self, harness_factory) -> None:
        """Send N fails; earlier ones succeed; N+1 reconnects and succeeds."""
        session = ScriptedSession(fail_sends={3})
        harness = harness_factory(session)

        results = await harness.send_all(4)

        assert [r.success for r in results] == [True, True, False, True]
        assert isinstance(results[2].error, NSCATransportError)
        assert results[2].reason == "Broken pipe"
        assert session.connect_count == 2
        assert session.close_reasons == ["transport_error"]
        # Failed message is not retried
        assert [m.host for m in session.sent] == ["host1", "host2", "host4"]

    async def test_connect_failure_reported_then_retried_on_next_message(self, harness_factory) -> None:
        session = ScriptedSession(fail_connects={1})
        harness = harness_factory(session)

        results = await harness.send_all(2)

        assert not results[0].success
        assert isinstance(results[0].error, NSCAConnectError)
        assert results[1].success
        assert session.connect_count == 2
        assert session.send_count == 1

    async def test_fifo_order(self, harness_factory) -> None:
        harness = harness_factory()
        futures = []
        loop = asyncio.get_running_loop()
        for i in range(5):
            future: asyncio.Future[SendResult] = loop.create_future()
            futures.append(future)
            await harness.messages.put(CheckMessage(0, f"h{i}", result=future))

        _ = await asyncio.gather(*futures)

        assert [m.host for m in harness.session.sent] == [f"h{i}" for i in range(5)]

    async def test_correlation_ids_are_unique(self, harness_factory) -> None:
        harness = harness_factory()
        results = await harness.send_all(3)
        ids = [r.correlation_id for r in results]
        assert all(ids)
        assert len(set(ids)) == 3

    async def test_unexpected_error_does_not_kill_runner(self, harness_factory) -> None:
        class ExplodingSession(ScriptedSession):
            async def send(self, message: CheckMessage) -> None:
                if message.host == "boom":
                    raise RuntimeError("kaboom")
                await super().send(message)

        harness = harness_factory(ExplodingSession())

        bad = await submit(harness.messages, CheckMessage(0, "boom"))
        good = await submit(harness.messages, CheckMessage(0, "fine"))

        assert not bad.success
        assert bad.reason == "kaboom"
        assert good.success


class TestSinks:
    """Tests for result delivery."""

    async def test_no_sink_is_fire_and_forget(self, harness_factory) -> None:
        harness = harness_factory()
        await harness.messages.put(CheckMessage(0, "web01"))
        await harness.messages.join()
        assert len(harness.session.sent) == 1

    async def test_sync_callback(self, harness_factory) -> None:
        harness = harness_factory()
        received: list[SendResult] = []

        await harness.messages.put(CheckMessage(0, "web01", result=received.append))
        await harness.messages.join()

        assert len(received) == 1
        assert received[0].success

    async def test_async_callback_applies_backpressure(self, harness_factory) -> None:
        harness = harness_factory(ScriptedSession())
        observed: list[int] = []

        async def slow_callback(_result: SendResult) -> None:
            await asyncio.sleep(0.02)
            observed.append(len(harness.session.sent))

        await harness.messages.put(CheckMessage(0, "a", result=slow_callback))
        await harness.messages.put(CheckMessage(0, "b", result=slow_callback))
        await harness.messages.join()

        # The second send only happened after the first callback returned
        assert observed == [1, 2]

    async def test_raising_callback_is_contained(self, harness_factory) -> None:
        harness = harness_factory()

        def bad_callback(_result: SendResult) -> None:
            raise ValueError("callback bug")

        await harness.messages.put(CheckMessage(0, "a", result=bad_callback))
        result = await submit(harness.messages, CheckMessage(0, "b"))

        assert result.success

    async def test_cancelled_future_is_skipped(self, harness_factory) -> None:
        harness = harness_factory()
        abandoned: asyncio.Future[SendResult] = asyncio.get_running_loop().create_future()
        abandoned.cancel()

        await harness.messages.put(CheckMessage(0, "a", result=abandoned))
        result = await submit(harness.messages, CheckMessage(0, "b"))

        assert result.success
        assert len(harness.session.sent) == 2


class TestStop:
    """Tests for shutdown."""

    async def test_stop_closes_session(self, harness_factory) -> None:
        harness = harness_factory()
        _ = await harness.send_all(1)

        await harness.shutdown()

        assert harness.session.close_reasons == ["stopped"]
        assert harness.runner.state == RunnerState.STOPPED

    async def test_stop_while_idle(self, harness_factory) -> None:
        harness = harness_factory()
        await asyncio.sleep(0)

        await harness.shutdown()

        assert harness.session.connect_count == 0
        assert harness.runner.state == RunnerState.STOPPED

    async def test_stop_set_before_run_sends_nothing(self) -> None:
        session = ScriptedSession()
        messages: asyncio.Queue[CheckMessage] = asyncio.Queue()
        stop = asyncio.Event()
        stop.set()
        await messages.put(CheckMessage(0, "web01"))
        runner = EndpointRunner(INFO, messages, stop, session=session)  # type: ignore[arg-type]

        await runner.run()

        assert session.send_count == 0
        assert runner.state == RunnerState.STOPPED

    async def test_cancellation_closes_session(self, harness_factory) -> None:
        harness = harness_factory(ScriptedSession(send_delay=1.0))
        await harness.messages.put(CheckMessage(0, "slow"))
        await asyncio.sleep(0.01)

        assert harness.task is not None
        _ = harness.task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await harness.task

        assert harness.session.close_reasons == ["stopped"]
        assert harness.runner.state == RunnerState.STOPPED

    async def test_queued_messages_reported_as_stopped(self) -> None:
        session = ScriptedSession()
        messages: asyncio.Queue[CheckMessage] = asyncio.Queue()
        stop = asyncio.Event()
        stop.set()
        received: list[SendResult] = []
        loop = asyncio.get_running_loop()
        future: asyncio.Future[SendResult] = loop.create_future()
        await messages.put(CheckMessage(0, "web01", result=future))
        await messages.put(CheckMessage(0, "web02", result=received.append))
        runner = EndpointRunner(INFO, messages, stop, session=session)  # type: ignore[arg-type]

        await runner.run()

        assert future.done()
        assert future.result().reason == STOPPED_REASON
        assert [r.reason for r in received] == [STOPPED_REASON]
        assert messages.empty()
        await asyncio.wait_for(messages.join(), timeout=1)

    async def test_submit_after_stop_returns_immediately(self, harness_factory) -> None:
        harness = harness_factory()
        await harness.shutdown()

        result = await asyncio.wait_for(submit(harness.messages, CheckMessage(0, "web01")), timeout=0.5)

        assert not result.success
        assert result.reason == STOPPED_REASON
        assert isinstance(result.error, NSCATransportError)
        assert harness.session.send_count == 0

    async def test_restarted_runner_accepts_submissions(self, harness_factory) -> None:
        harness = harness_factory()
        await harness.shutdown()

        harness.stop.clear()
        harness.start()
        result = await submit(harness.messages, CheckMessage(0, "web01"))

        assert result.success
