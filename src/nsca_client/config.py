"""Connection settings from environment, YAML file and explicit overrides.

Precedence, lowest to highest: NSCA_* environment variables (nsca_client.const),
the YAML config file, keyword overrides (the CLI flags).

Example config file::

    host: nagios.example.com
    port: 5667
    encryption_method: 1
    password: secret
    timeout: 10
    max_output_length: 512
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nsca_client import const
from nsca_client.protocol.exceptions import NSCAConfigurationError
from nsca_client.transport.types import ServerConnectInfo

logger = logging.getLogger(__name__)

CONFIG_KEYS = frozenset(ServerConnectInfo.model_fields)


def env_defaults() -> dict[str, Any]:
    """Connection settings taken from the NSCA_* environment variables."""
    return {
        "host": const.NSCA_HOST,
        "port": const.NSCA_PORT,
        "encryption_method": const.NSCA_ENCRYPTION_METHOD,
        "password": const.NSCA_PASSWORD,
        "timeout": const.NSCA_TIMEOUT,
        "max_output_length": const.NSCA_MAX_OUTPUT_LENGTH,
    }


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Parse a YAML config file into connection settings.

    An empty file yields no settings.

    Raises:
        NSCAConfigurationError: Missing or unreadable file, invalid YAML,
            a top level that is not a mapping, or unknown keys

    """
    config_path = Path(path).expanduser()
    logger.debug("Parsing config file: %s", config_path)
    try:
        with config_path.open() as f:
            config_data = yaml.safe_load(f)
    except OSError as e:
        msg = f"cannot read config file {config_path}: {e.strerror or e}"
        raise NSCAConfigurationError(msg) from e
    except yaml.YAMLError as e:
        msg = f"invalid YAML in {config_path}"
        raise NSCAConfigurationError(msg) from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        msg = f"config file {config_path} must contain a mapping"
        raise NSCAConfigurationError(msg)

    unknown = sorted(str(key) for key in config_data if key not in CONFIG_KEYS)
    if unknown:
        msg = f"unknown config keys in {config_path}: {', '.join(unknown)}"
        raise NSCAConfigurationError(msg)

    return dict(config_data)


def load_connect_info(path: str | Path | None = None, **overrides: Any) -> ServerConnectInfo:
    """Build validated connection settings.

    Args:
        path: Optional YAML config file
        **overrides: Explicit settings; None values are ignored so unset CLI
            flags fall through to the file and environment

    Raises:
        NSCAConfigurationError: Bad config file, unknown override or a value
            that fails validation

    """
    unknown = sorted(key for key in overrides if key not in CONFIG_KEYS)
    if unknown:
        msg = f"unknown settings: {', '.join(unknown)}"
        raise NSCAConfigurationError(msg)

    settings = env_defaults()
    if path is not None:
        settings.update(read_config_file(path))
    settings.update({key: value for key, value in overrides.items() if value is not None})

    try:
        info = ServerConnectInfo(**settings)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise NSCAConfigurationError(errors) from e

    logger.debug(
        "Loaded connection settings for %s",
        info.address,
        extra={"server": info.address, "method": info.encryption_method, "timeout": info.timeout},
    )
    return info
