"""Daemon configuration and environment overrides."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from quickfile.index.lister import DEFAULT_LISTER, resolve_home

DEFAULT_REQUEST_SOCKET = Path("/tmp/quickfile-daemon.sock")
DEFAULT_RESPONSE_SOCKET = Path("/tmp/quickfile-response.sock")
DEFAULT_REFRESH_INTERVAL = 300.0  # seconds
DEFAULT_SEARCH_LIMIT = 100

ENV_REQUEST_SOCKET = "QUICKFILE_SOCKET"
ENV_RESPONSE_SOCKET = "QUICKFILE_RESPONSE_SOCKET"
ENV_ROOT = "QUICKFILE_ROOT"
ENV_REFRESH_INTERVAL = "QUICKFILE_REFRESH_INTERVAL"
ENV_LISTER = "QUICKFILE_LISTER"


@dataclass(frozen=True)
class ResponseChannelIntervals:
    """Polling intervals of the response channel manager, in seconds."""

    idle: float = 1.0  # no active clients
    hold: float = 5.0  # connected, clients active
    retry: float = 2.0  # connect attempt failed


@dataclass(frozen=True)
class DaemonConfig:
    request_socket: Path = DEFAULT_REQUEST_SOCKET
    response_socket: Path = DEFAULT_RESPONSE_SOCKET
    root: Path = field(default_factory=lambda: Path(resolve_home()))
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    lister: str = DEFAULT_LISTER
    intervals: ResponseChannelIntervals = field(default_factory=ResponseChannelIntervals)


def _env_float(name: str) -> float | None:
    value = os.environ.get(name)
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {value!r} (expected a number)") from None
    if parsed <= 0:
        raise ValueError(f"Invalid value for {name}: {value!r} (must be positive)")
    return parsed


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name)
    return Path(value) if value else None


def load_config(
    request_socket: Path | None = None,
    response_socket: Path | None = None,
    root: Path | None = None,
    refresh_interval: float | None = None,
    lister: str | None = None,
) -> DaemonConfig:
    """
    Build the daemon configuration.

    Explicit arguments win over the QUICKFILE_* environment variables, which
    win over the built-in defaults.

    Raises:
        ValueError: If an environment variable holds an invalid value.
    """
    overrides = {
        "request_socket": request_socket or _env_path(ENV_REQUEST_SOCKET),
        "response_socket": response_socket or _env_path(ENV_RESPONSE_SOCKET),
        "root": root or _env_path(ENV_ROOT),
        "refresh_interval": refresh_interval or _env_float(ENV_REFRESH_INTERVAL),
        "lister": lister or os.environ.get(ENV_LISTER) or None,
    }
    return replace(DaemonConfig(), **{k: v for k, v in overrides.items() if v is not None})
