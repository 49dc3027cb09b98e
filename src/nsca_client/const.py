import os

from nsca_client import __version__

__all__ = [
    "NSCA_CLIENT_VERSION",
    "NSCA_DEBUG",
    "NSCA_DELIMITER",
    "NSCA_ENCRYPTION_METHOD",
    "NSCA_HOST",
    "NSCA_LOG_FORMAT",
    "NSCA_LOG_HUMAN_OUTPUT",
    "NSCA_LOG_JSON_FILE",
    "NSCA_MAX_OUTPUT_LENGTH",
    "NSCA_METRICS_PORT",
    "NSCA_PASSWORD",
    "NSCA_PORT",
    "NSCA_TIMEOUT",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", "on")

NSCA_CLIENT_VERSION: str = __version__


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


NSCA_HOST: str = os.environ.get("NSCA_HOST", "localhost")
NSCA_PORT: int = _int_env("NSCA_PORT", 5667)
NSCA_ENCRYPTION_METHOD: int = _int_env("NSCA_ENCRYPTION_METHOD", 0)
NSCA_PASSWORD: str = os.environ.get("NSCA_PASSWORD", "")
# 0 disables deadlines
NSCA_TIMEOUT: float = _float_env("NSCA_TIMEOUT", 10.0)
NSCA_MAX_OUTPUT_LENGTH: int = _int_env("NSCA_MAX_OUTPUT_LENGTH", 512)
NSCA_DELIMITER: str = os.environ.get("NSCA_DELIMITER", "\t")

_metrics_port = _int_env("NSCA_METRICS_PORT", 0)
NSCA_METRICS_PORT: int | None = _metrics_port if _metrics_port > 0 else None

NSCA_DEBUG: bool = os.environ.get("NSCA_DEBUG", "0").casefold() in YES_ANSWER
NSCA_LOG_FORMAT: str = os.environ.get("NSCA_LOG_FORMAT", "human")
_json_file = os.environ.get("NSCA_LOG_JSON_FILE")
NSCA_LOG_JSON_FILE: str | None = _json_file if _json_file else None
NSCA_LOG_HUMAN_OUTPUT: str = os.environ.get("NSCA_LOG_HUMAN_OUTPUT", "stderr")
