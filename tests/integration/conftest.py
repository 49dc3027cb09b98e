"""Fixtures for integration tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator

import pytest

from tests.helpers.acceptor import FakeAcceptor


@pytest.fixture
async def acceptor_factory() -> AsyncGenerator:
    """Start fake acceptors on demand and stop them after the test."""
    acceptors: list[FakeAcceptor] = []

    async def factory(**kwargs: object) -> FakeAcceptor:
        acceptor = FakeAcceptor(**kwargs)  # type: ignore[arg-type]
        await acceptor.start()
        acceptors.append(acceptor)
        return acceptor

    yield factory

    for acceptor in acceptors:
        await acceptor.stop()


@pytest.fixture
async def unused_port() -> int:
    """A localhost port with nothing listening on it."""
    server = await asyncio.start_server(lambda _r, _w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port
