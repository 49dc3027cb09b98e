"""Logging abstraction layer for the NSCA client.

Provides dual-format logging (JSON + human-readable) with correlation tracking,
structured context, and configurable output destinations.

Library modules log through plain ``logging.getLogger(__name__)`` and attach
structured fields with ``extra={...}``; both formatters pick those fields up
from the record. Handlers are only installed by ``get_logger`` (the CLI calls
it for the package logger), so embedding applications keep full control.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from nsca_client.correlation import get_correlation_id

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "NSCALogger",
    "get_logger",
    "record_context",
]

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "correlation_id",
    "extra_data",
    "taskName",
}


def record_context(record: logging.LogRecord) -> dict[str, object]:
    """Collect the structured fields attached to a record."""
    context: dict[str, object] = {
        key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        context.update(cast("Mapping[str, object]", extra_data))
    return context


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        context = record_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with correlation IDs."""

    def __init__(self) -> None:
        # Format: timestamp level [module:line] correlation_id > message
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"

        formatted = super().format(record)

        context = record_context(record)
        if context:
            context_str = " | ".join(f"{k}={v}" for k, v in context.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class NSCALogger:
    """Logger abstraction providing dual-format output (JSON + human-readable).

    Wraps a stdlib logger; child loggers of the same name (every
    ``nsca_client.*`` module logger when wrapping ``nsca_client``) propagate
    into the handlers configured here.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "both",
        json_file: str | Path | None = None,
        human_output: str | None = "stderr",
        *,
        debug: bool | None = None,
    ) -> None:
        """Initialize NSCALogger.

        Args:
            name: Logger name (typically the package or module name)
            log_format: Output format - "json", "human", or "both"
            json_file: Path for JSON output file (None to disable file output)
            human_output: "stdout", "stderr", or file path for human-readable output
            debug: Force DEBUG level (defaults to NSCA_DEBUG)

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format

        if debug is None:
            from nsca_client.const import NSCA_DEBUG

            debug = NSCA_DEBUG

        initial_level = logging.DEBUG if debug else logging.INFO
        self.logger.setLevel(initial_level)

        # Don't add handlers if already configured (avoid duplicates)
        if not self.logger.handlers:
            self._configure_handlers(json_file, human_output)

    def _configure_handlers(
        self,
        json_file: str | Path | None,
        human_output: str | None,
    ) -> None:
        """Configure log handlers based on format settings."""
        handler_level = self.logger.level

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
                json_handler.setFormatter(JSONFormatter())
                json_handler.setLevel(handler_level)
                self.logger.addHandler(json_handler)
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

        if self.log_format in ("human", "both"):
            # stdout is reserved for CLI output, so human logs default to stderr
            normalized_output = human_output or "stderr"
            human_handler: logging.Handler
            if normalized_output == "stdout":
                human_handler = logging.StreamHandler(sys.stdout)
            elif normalized_output == "stderr":
                human_handler = logging.StreamHandler(sys.stderr)
            else:
                try:
                    human_path = Path(normalized_output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stderr)

            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(handler_level)
            self.logger.addHandler(human_handler)

    def set_level(self, level: int) -> None:
        """Set logging level on the logger and its handlers."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        """Get list of handlers."""
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    *,
    debug: bool | None = None,
) -> NSCALogger:
    """Get or create an NSCALogger instance.

    Args:
        name: Logger name
        log_format: Override default format ("json", "human", or "both")
        json_file: Override default JSON output file
        human_output: Override default human-readable output
        debug: Override NSCA_DEBUG

    Returns:
        NSCALogger instance

    """
    from nsca_client.const import (
        NSCA_LOG_FORMAT,
        NSCA_LOG_HUMAN_OUTPUT,
        NSCA_LOG_JSON_FILE,
    )

    return NSCALogger(
        name=name,
        log_format=log_format or NSCA_LOG_FORMAT,
        json_file=json_file or NSCA_LOG_JSON_FILE,
        human_output=human_output or NSCA_LOG_HUMAN_OUTPUT,
        debug=debug,
    )
