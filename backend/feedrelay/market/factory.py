"""Factory wiring the market data services together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import RelaySettings
from .cache import MarketStateCache
from .hub import BroadcastHub
from .snapshot import SnapshotFetcher
from .upstream import StreamConnectionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketServices:
    """The shared cache plus the components that read and write it."""

    cache: MarketStateCache
    hub: BroadcastHub
    fetcher: SnapshotFetcher
    upstream: StreamConnectionManager


def create_market_services(settings: RelaySettings) -> MarketServices:
    """Create one cache and inject it into the fetcher, stream manager and hub.

    Both writers notify the hub after their cache write. Returns unstarted
    services; the caller awaits ``fetcher.start()`` and ``upstream.start()``.
    """
    cache = MarketStateCache()
    hub = BroadcastHub(cache, queue_size=settings.subscriber_queue_size)
    fetcher = SnapshotFetcher(
        url=settings.snapshot_url,
        symbol=settings.symbol,
        interval=settings.interval,
        cache=cache,
        on_refresh=hub.broadcast_update,
    )
    upstream = StreamConnectionManager(
        url=settings.stream_url,
        topic=settings.topic,
        cache=cache,
        on_update=hub.broadcast_update,
        reconnect_delay=settings.reconnect_delay,
        heartbeat_interval=settings.heartbeat_interval,
    )
    logger.info("Market services configured for %s (topic %s)", settings.symbol, settings.topic)
    return MarketServices(cache=cache, hub=hub, fetcher=fetcher, upstream=upstream)
