"""Thread-safe in-memory market state cache."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from threading import Lock

from .models import Candlestick, MarketState, OrderBook


class MarketStateCache:
    """Latest candlestick sequence, order book and ticker. No history.

    Writers: SnapshotFetcher (candles) and StreamConnectionManager (ticker).
    Readers: BroadcastHub on subscriber join, the status endpoint.

    Every mutator swaps a whole field under the lock and readers receive an
    immutable MarketState, so a read never sees a half-applied write.
    """

    def __init__(self) -> None:
        self._candles: tuple[Candlestick, ...] = ()
        self._order_book = OrderBook()
        self._ticker: dict | None = None
        self._lock = Lock()
        self._version: int = 0  # Monotonically increasing; bumped on every replace

    def read(self) -> MarketState:
        """Consistent snapshot of all cached fields."""
        with self._lock:
            return MarketState(
                candles=self._candles,
                order_book=self._order_book,
                ticker=dict(self._ticker) if self._ticker is not None else None,
                version=self._version,
            )

    def replace_candles(self, candles: Iterable[Candlestick]) -> None:
        """Replace the whole candlestick sequence, keeping upstream order."""
        candles = tuple(candles)
        with self._lock:
            self._candles = candles
            self._version += 1

    def replace_order_book(self, order_book: OrderBook) -> None:
        with self._lock:
            self._order_book = order_book
            self._version += 1

    def replace_ticker(self, ticker: Mapping) -> None:
        """Store the latest ticker payload received on the stream."""
        ticker = dict(ticker)
        with self._lock:
            self._ticker = ticker
            self._version += 1

    @property
    def version(self) -> int:
        """Current version counter. Useful for change detection."""
        return self._version
