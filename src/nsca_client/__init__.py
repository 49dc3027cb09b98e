"""Asyncio client for the Nagios Service Check Acceptor (NSCA).

Typical use is a long-lived endpoint fed through a queue::

    messages: asyncio.Queue[CheckMessage] = asyncio.Queue()
    stop = asyncio.Event()
    runner = asyncio.create_task(run_endpoint(ServerConnectInfo(host="nagios"), stop, messages))
    result = await submit(messages, CheckMessage(CheckState.CRITICAL, "web01", "disk", "95% full"))
"""

__version__ = "0.1.0"

from nsca_client.protocol import CheckState, EncryptionMethod, NSCAError  # noqa: E402
from nsca_client.transport import (  # noqa: E402
    CheckMessage,
    EndpointRunner,
    NSCASession,
    SendResult,
    ServerConnectInfo,
    run_endpoint,
    submit,
)

__all__ = [
    "CheckMessage",
    "CheckState",
    "EncryptionMethod",
    "EndpointRunner",
    "NSCAError",
    "NSCASession",
    "SendResult",
    "ServerConnectInfo",
    "__version__",
    "run_endpoint",
    "submit",
]
