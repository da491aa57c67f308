"""Fixtures for market data tests."""

import pytest

from feedrelay.config import RelaySettings
from feedrelay.market.cache import MarketStateCache
from feedrelay.market.models import Candlestick


@pytest.fixture
def cache():
    """An empty market state cache."""
    return MarketStateCache()


@pytest.fixture
def candles():
    """Two candlesticks in upstream order."""
    return [
        Candlestick(timestamp=1_700_000_900_000, open=101.0, high=103.5, low=100.5, close=102.25),
        Candlestick(timestamp=1_700_000_000_000, open=100.0, high=101.5, low=99.0, close=101.0),
    ]


@pytest.fixture
def settings():
    """Settings with near-zero delays and no heartbeat, safe for tests."""
    return RelaySettings(reconnect_delay=0.01, heartbeat_interval=None)
