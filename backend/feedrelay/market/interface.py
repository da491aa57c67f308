"""Abstract interface for upstream market data sources."""

from __future__ import annotations

from abc import ABC, abstractmethod


class MarketDataSource(ABC):
    """Contract for components that pull from the upstream venue.

    Implementations write into the shared MarketStateCache and notify the
    BroadcastHub on their own schedule. Subscribers never talk to a source
    directly; they are initialized from the cache and fed by the hub.

    Lifecycle:
        services = create_market_services(settings)
        await services.fetcher.start()
        await services.upstream.start()
        # ... app runs ...
        await services.upstream.stop()
        await services.fetcher.stop()
    """

    @abstractmethod
    async def start(self) -> None:
        """Begin pulling from upstream in a background task.

        Returns without waiting for upstream I/O. Calling start() while the
        source is already running is a logged no-op.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Cancel the background task and release resources.

        Safe to call multiple times. After stop(), the source will not write
        to the cache again.
        """
