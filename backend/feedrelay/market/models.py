"""Data models for market data."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Server-to-client event names on the subscriber protocol
CANDLESTICK_EVENT = "candlestickData"
ORDER_BOOK_EVENT = "orderBookData"
TICKER_EVENT = "tickerData"


def _parse_timestamp(value: Any) -> int:
    # int() would silently truncate 1000.5
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"timestamp {value!r} is not a whole number")
    return int(value)


@dataclass(frozen=True, slots=True)
class Candlestick:
    """One aggregated price bar. Immutable once produced."""

    timestamp: int  # Epoch, unit defined by the upstream venue (ms for Bybit)
    open: float
    high: float
    low: float
    close: float

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> Candlestick:
        """Build from a wire row ``[timestamp, open, high, low, close, ...]``.

        Prices arrive as strings and are parsed to float. Extra trailing
        fields (volume, turnover) are ignored. Raises ValueError or TypeError
        on short or non-numeric rows.
        """
        if len(row) < 5:
            raise ValueError(f"kline row has {len(row)} fields, expected at least 5")
        return cls(
            timestamp=_parse_timestamp(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
        )

    def to_dict(self) -> dict:
        """Serialize for JSON transmission."""
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }


@dataclass(frozen=True, slots=True)
class OrderBook:
    """Bid and ask price levels. Opaque to the relay; replaced as a whole."""

    bids: tuple = ()
    asks: tuple = ()

    def to_dict(self) -> dict:
        return {"bids": list(self.bids), "asks": list(self.asks)}


@dataclass(frozen=True, slots=True)
class MarketState:
    """Point-in-time view of everything the cache holds."""

    candles: tuple[Candlestick, ...] = ()
    order_book: OrderBook = field(default_factory=OrderBook)
    ticker: dict | None = None
    version: int = 0


class ConnectionState(str, Enum):
    """Lifecycle of the single upstream stream connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
