"""Runtime settings, read from the environment."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_STREAM_URL = "wss://stream.bybit.com/v5/public/spot"
DEFAULT_SNAPSHOT_URL = "https://api.bybit.com/v5/market/kline"


def _get(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name, "").strip()
    return value or default


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True, slots=True)
class RelaySettings:
    """Everything the relay needs to know about upstream and its listener."""

    stream_url: str = DEFAULT_STREAM_URL
    snapshot_url: str = DEFAULT_SNAPSHOT_URL
    symbol: str = "SOLUSDT"
    interval: str = "15"
    reconnect_delay: float = 5.0
    heartbeat_interval: float | None = 20.0
    subscriber_queue_size: int = 256
    allowed_origin: str = "http://localhost:4200"
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    @property
    def topic(self) -> str:
        """Stream topic for the configured symbol's ticker channel."""
        return f"tickers.{self.symbol}"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> RelaySettings:
        """Build settings from FEEDRELAY_* variables. Unset or blank means default.

        Raises ValueError naming the variable when a numeric value is malformed.
        """
        env = os.environ if env is None else env
        heartbeat = _get_float(env, "FEEDRELAY_HEARTBEAT_INTERVAL", 20.0)
        return cls(
            stream_url=_get(env, "FEEDRELAY_STREAM_URL", DEFAULT_STREAM_URL),
            snapshot_url=_get(env, "FEEDRELAY_SNAPSHOT_URL", DEFAULT_SNAPSHOT_URL),
            symbol=_get(env, "FEEDRELAY_SYMBOL", "SOLUSDT").upper(),
            interval=_get(env, "FEEDRELAY_INTERVAL", "15"),
            reconnect_delay=_get_float(env, "FEEDRELAY_RECONNECT_DELAY", 5.0),
            heartbeat_interval=heartbeat or None,
            subscriber_queue_size=_get_int(env, "FEEDRELAY_SUBSCRIBER_QUEUE_SIZE", 256),
            allowed_origin=_get(env, "FEEDRELAY_ALLOWED_ORIGIN", "http://localhost:4200"),
            host=_get(env, "FEEDRELAY_HOST", "0.0.0.0"),
            port=_get_int(env, "FEEDRELAY_PORT", 5000),
            log_level=_get(env, "FEEDRELAY_LOG_LEVEL", "INFO").upper(),
        )
