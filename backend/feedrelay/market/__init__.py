"""Market data subsystem for feedrelay.

Public API:
    Candlestick             - Immutable price bar dataclass
    OrderBook               - Bid/ask snapshot dataclass
    MarketState             - Consistent read of the cache
    ConnectionState         - Upstream connection lifecycle states
    MarketStateCache        - Thread-safe in-memory state store
    MarketDataSource        - Abstract interface for upstream pullers
    SnapshotFetcher         - One-shot historical kline fetch
    StreamConnectionManager - Single upstream WebSocket with reconnect
    BroadcastHub            - Subscriber registry and fan-out
    create_market_services  - Factory wiring cache, sources and hub
    create_stream_router    - FastAPI router factory for the subscriber endpoint
"""

from .cache import MarketStateCache
from .factory import MarketServices, create_market_services
from .hub import BroadcastHub
from .interface import MarketDataSource
from .models import Candlestick, ConnectionState, MarketState, OrderBook
from .snapshot import SnapshotFetcher
from .stream import create_stream_router
from .upstream import StreamConnectionManager

__all__ = [
    "Candlestick",
    "OrderBook",
    "MarketState",
    "ConnectionState",
    "MarketStateCache",
    "MarketDataSource",
    "SnapshotFetcher",
    "StreamConnectionManager",
    "BroadcastHub",
    "MarketServices",
    "create_market_services",
    "create_stream_router",
]
