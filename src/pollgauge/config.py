"""
Runtime configuration. Built once by the CLI (flags with env var
fallbacks) and never mutated afterwards.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Tuple

from pollgauge.errors import ConfigError

DEFAULT_FETCH_URL = "https://obloc.ch/_cmsbox_backends_/obloc/guestcounter/"
DEFAULT_SCRAPE_INTERVAL = 300.0
DEFAULT_LISTEN_ADDRESS = ":8081"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_HEALTH_PATH = "/healthz"
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_SHUTDOWN_GRACE = 5.0
DEFAULT_NAMESPACE = "obloc"

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_RE = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+")
_NAMESPACE_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")


def parse_duration(text: str) -> float:
    """Parse "300s", "5m", "1h30m", "250ms" or a bare number of seconds."""
    text = text.strip()
    if not text:
        raise ConfigError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ConfigError(f"invalid duration {text!r}")
        return seconds

    sign = 1.0
    body = text
    if body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]

    if not _DURATION_RE.fullmatch(body):
        raise ConfigError(f"invalid duration {text!r}")

    total = 0.0
    for amount, unit in _DURATION_PART_RE.findall(body):
        total += float(amount) * _UNIT_SECONDS[unit]
    return sign * total


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split "host:port" (or ":port", or "[::1]:port") into a bind tuple."""
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ConfigError(f"listen address {address!r} is missing a port")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {address!r}") from None

    if not 0 <= port <= 65535:
        raise ConfigError(f"port {port} out of range in listen address {address!r}")
    return host, port


@dataclass(frozen=True)
class Config:
    fetch_url: str = DEFAULT_FETCH_URL
    scrape_interval: float = DEFAULT_SCRAPE_INTERVAL
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    metrics_path: str = DEFAULT_METRICS_PATH
    health_path: str = DEFAULT_HEALTH_PATH
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    shutdown_grace: float = DEFAULT_SHUTDOWN_GRACE
    namespace: str = DEFAULT_NAMESPACE

    def validate(self) -> "Config":
        if not self.fetch_url:
            raise ConfigError("fetch url must not be empty")
        if self.scrape_interval <= 0:
            raise ConfigError(f"scrape interval must be positive, got {self.scrape_interval}")
        if self.fetch_timeout <= 0:
            raise ConfigError(f"fetch timeout must be positive, got {self.fetch_timeout}")
        if self.shutdown_grace < 0:
            raise ConfigError(f"shutdown grace must not be negative, got {self.shutdown_grace}")
        for path in (self.metrics_path, self.health_path):
            if not path.startswith("/"):
                raise ConfigError(f"endpoint path {path!r} must start with '/'")
        if self.metrics_path == self.health_path:
            raise ConfigError("metrics and health endpoints must use different paths")
        if not _NAMESPACE_RE.fullmatch(self.namespace):
            raise ConfigError(f"invalid metric namespace {self.namespace!r}")
        parse_listen_address(self.listen_address)
        return self

    @property
    def bind_address(self) -> Tuple[str, int]:
        return parse_listen_address(self.listen_address)
