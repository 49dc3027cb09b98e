"""send_nsca compatible command-line client.

Reads passive check results from stdin, one per line::

    <host>[tab]<service>[tab]<state>[tab]<output>    service check
    <host>[tab]<state>[tab]<output>                  host check

and delivers them through a single endpoint runner. Exit status is 0 when
every check was delivered and 2 otherwise.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TextIO

import uvloop

from nsca_client.config import load_connect_info
from nsca_client.const import NSCA_CLIENT_VERSION, NSCA_DELIMITER, NSCA_METRICS_PORT
from nsca_client.correlation import correlation_context
from nsca_client.logging_abstraction import get_logger
from nsca_client.metrics import registry
from nsca_client.protocol.encryption import prepare_cipher
from nsca_client.protocol.exceptions import NSCAError, NSCAValidationError
from nsca_client.transport.endpoint import EndpointRunner, stopped_result
from nsca_client.transport.types import CheckMessage, SendResult, ServerConnectInfo

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 2


def parse_check_line(line: str, delimiter: str = "\t") -> CheckMessage:
    """Parse one stdin line into a check message.

    Raises:
        NSCAValidationError: Wrong field count or a non-numeric state

    """
    fields = line.rstrip("\r\n").split(delimiter, 3)
    if len(fields) == 4:
        host, service, state_text, output = fields
    elif len(fields) == 3:
        host, state_text, output = fields
        service = ""
    else:
        msg = f"expected 3 or 4 fields, got {len(fields)}"
        raise NSCAValidationError(msg, "line")

    if not host:
        msg = "host name is empty"
        raise NSCAValidationError(msg, "host")
    try:
        state = int(state_text.strip())
    except ValueError:
        msg = f"state {state_text!r} is not a number"
        raise NSCAValidationError(msg, "state") from None

    return CheckMessage(state=state, host=host, service=service, output=output)


def read_checks(lines: Iterable[str], delimiter: str = "\t") -> tuple[list[CheckMessage], int]:
    """Parse check lines, skipping blank ones.

    Returns:
        The parsed messages and the number of malformed lines

    """
    checks: list[CheckMessage] = []
    invalid = 0
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            checks.append(parse_check_line(line, delimiter))
        except NSCAValidationError as e:
            invalid += 1
            logger.warning(
                "Skipping malformed line %d: %s",
                lineno,
                e.reason,
                extra={"line": lineno, "field": e.field},
            )
    return checks, invalid


async def send_checks(
    info: ServerConnectInfo,
    checks: Sequence[CheckMessage],
    stop: asyncio.Event,
) -> list[SendResult]:
    """Deliver checks in order through one endpoint runner.

    Returns one result per check. Checks still queued when ``stop`` fires
    are reported as stopped.
    """
    loop = asyncio.get_running_loop()
    messages: asyncio.Queue[CheckMessage] = asyncio.Queue()
    futures: list[asyncio.Future[SendResult]] = []
    for check in checks:
        future: asyncio.Future[SendResult] = loop.create_future()
        check.result = future
        futures.append(future)
        messages.put_nowait(check)

    runner = EndpointRunner(info, messages, stop)
    runner_task = asyncio.create_task(runner.run(), name="nsca_endpoint_runner")
    results_task = asyncio.ensure_future(asyncio.gather(*futures))
    try:
        _ = await asyncio.wait({runner_task, results_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.set()
        await runner_task
        if not results_task.done():
            results_task.cancel()

    return [
        future.result() if future.done() and not future.cancelled() else stopped_result() for future in futures
    ]


def parse_cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nsca-client",
        description="Send passive check results read from stdin to an NSCA daemon",
    )
    _ = parser.add_argument("-H", "--host", help="NSCA daemon host (default: NSCA_HOST or localhost)")
    _ = parser.add_argument("-p", "--port", type=int, help="NSCA daemon port (default: 5667)")
    _ = parser.add_argument("-c", "--config", type=Path, help="YAML file with connection settings")
    _ = parser.add_argument("-t", "--timeout", type=float, help="Connect/read/write timeout in seconds (0 disables)")
    _ = parser.add_argument("-e", "--encryption", type=int, dest="encryption_method", help="Encryption method code")
    _ = parser.add_argument(
        "-o",
        "--max-output-length",
        type=int,
        dest="max_output_length",
        help="Plugin output width the daemon was built with (512 or 4096)",
    )
    _ = parser.add_argument(
        "-d",
        "--delimiter",
        default=NSCA_DELIMITER,
        help="Field delimiter for stdin lines (default: tab)",
    )
    _ = parser.add_argument(
        "--metrics-port",
        type=int,
        default=NSCA_METRICS_PORT,
        help="Expose Prometheus metrics on this port",
    )
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {NSCA_CLIENT_VERSION}")
    args = parser.parse_args(argv)
    if len(args.delimiter) != 1:
        parser.error("delimiter must be a single character")
    return args


async def run_cli(info: ServerConnectInfo, checks: Sequence[CheckMessage]) -> list[SendResult]:
    """Send checks, stopping early on SIGINT or SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)
    try:
        return await send_checks(info, checks, stop)
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(signum)


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    """Main entry point for the NSCA client."""
    args = parse_cli(argv)
    app_logger = get_logger("nsca_client", debug=True if args.debug else None)
    if args.debug:
        app_logger.set_level(logging.DEBUG)

    with correlation_context():
        try:
            info = load_connect_info(
                args.config,
                host=args.host,
                port=args.port,
                timeout=args.timeout,
                encryption_method=args.encryption_method,
                max_output_length=args.max_output_length,
            )
            # Fail fast before reading stdin
            _ = prepare_cipher(info.encryption_method, info.password)
        except NSCAError as e:
            logger.error("Invalid configuration: %s", e)  # noqa: TRY400
            return EXIT_FAILURE

        if args.metrics_port:
            registry.start_metrics_server(args.metrics_port)

        checks, invalid = read_checks(stdin or sys.stdin, args.delimiter)
        logger.debug("Read %d checks (%d malformed) from stdin", len(checks), invalid)

        results = uvloop.run(run_cli(info, checks)) if checks else []

        sent = sum(1 for result in results if result.success)
        print(f"{sent} data packet(s) sent to host successfully.")
        if sent != len(results) or invalid:
            logger.error(
                "%d of %d checks were not delivered",
                len(results) - sent + invalid,
                len(results) + invalid,
                extra={"server": info.address},
            )
            return EXIT_FAILURE
        return EXIT_OK
