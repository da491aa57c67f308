"""Historical candlestick snapshot fetcher (Bybit v5 kline REST endpoint)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from .cache import MarketStateCache
from .interface import MarketDataSource
from .models import CANDLESTICK_EVENT, Candlestick

logger = logging.getLogger(__name__)


def parse_kline_rows(rows: list) -> list[Candlestick]:
    """Map raw ``result.list`` rows into Candlesticks, preserving order.

    Malformed rows are skipped with a warning instead of failing the batch.
    """
    candles: list[Candlestick] = []
    for row in rows:
        try:
            candles.append(Candlestick.from_row(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed kline row %r: %s", row, e)
    return candles


class SnapshotFetcher(MarketDataSource):
    """Pulls the historical kline series once and replaces the cached candles.

    On success the cache is swapped wholesale and ``on_refresh`` is called
    with the ``candlestickData`` event so already-connected subscribers get
    the series too. Any failure leaves the cache as it was: stale data is
    preferable to no data.
    """

    def __init__(
        self,
        url: str,
        symbol: str,
        interval: str,
        cache: MarketStateCache,
        on_refresh: Callable[[str, Any], None] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._params = {"symbol": symbol, "interval": interval}
        self._cache = cache
        self._on_refresh = on_refresh
        self._client = client
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        # One-shot: the fetch runs in the background so startup and
        # subscriber handling never wait on the REST endpoint.
        if self._task and not self._task.done():
            logger.warning("Snapshot fetch already in progress")
            return
        self._task = asyncio.create_task(self.fetch_snapshot(), name="snapshot-fetch")

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def fetch_snapshot(self) -> list[Candlestick] | None:
        """Fetch and cache the kline series. Returns the new candles, or None.

        None means the cache was left untouched (error, rate limit, or no data).
        """
        logger.info("Fetching candlestick snapshot from %s %s", self._url, self._params)
        try:
            response = await self._get()
        except httpx.HTTPError as e:
            logger.error("Error fetching candlestick data: %s", e)
            return None

        if response.status_code == 429:
            logger.warning("Rate limited by snapshot endpoint. Skipping this fetch to avoid further 429s.")
            return None
        if response.status_code == 404:
            logger.error(
                "Snapshot endpoint returned 404: resource not found. Check the REST URL or the symbol %s.",
                self._params["symbol"],
            )
            return None

        try:
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Error fetching candlestick data: %s", e)
            return None
        except ValueError as e:
            logger.error("Snapshot response is not valid JSON: %s", e)
            return None

        if not isinstance(body, dict):
            logger.error("Unexpected snapshot response shape: %s", type(body).__name__)
            return None

        ret_code = body.get("retCode")
        if ret_code not in (None, 0):
            logger.error("Snapshot endpoint error %s: %s", ret_code, body.get("retMsg", "unknown"))
            return None

        result = body.get("result")
        rows = result.get("list") if isinstance(result, dict) else None
        if not isinstance(rows, list):
            logger.warning("No candlestick data found in snapshot response.")
            return None

        candles = parse_kline_rows(rows)
        if rows and not candles:
            logger.error("All %d kline rows were malformed; keeping cached candles", len(rows))
            return None
        self._cache.replace_candles(candles)
        logger.info("Fetched %d candlesticks for %s", len(candles), self._params["symbol"])

        if self._on_refresh is not None:
            self._on_refresh(CANDLESTICK_EVENT, [c.to_dict() for c in candles])
        return candles

    async def _get(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self._url, params=self._params)
        async with httpx.AsyncClient() as client:
            return await client.get(self._url, params=self._params)
