"""Single upstream WebSocket connection with fixed-delay reconnect."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from .cache import MarketStateCache
from .interface import MarketDataSource
from .models import TICKER_EVENT, ConnectionState

logger = logging.getLogger(__name__)

Connector = Callable[[str], AbstractAsyncContextManager[Any]]


class StreamConnectionManager(MarketDataSource):
    """Owns the one long-lived subscription to the upstream stream.

    State machine, driven by a single control loop task:

        DISCONNECTED -> CONNECTING   connect() called
        CONNECTING   -> CONNECTED    transport open; subscribe intent sent
        CONNECTED    -> DISCONNECTED close or transport error
        DISCONNECTED -> CONNECTING   after ``reconnect_delay`` seconds

    There is no retry limit and no backoff growth. ``connect()`` returns only
    once the transport has closed, so a new attempt never overlaps the
    previous connection.

    Messages whose ``topic`` matches the subscribed topic are written to the
    cache and then handed to ``on_update``. Anything else is logged and
    dropped without touching the connection.
    """

    def __init__(
        self,
        url: str,
        topic: str,
        cache: MarketStateCache,
        on_update: Callable[[str, Any], None] | None = None,
        reconnect_delay: float = 5.0,
        heartbeat_interval: float | None = 20.0,
        connector: Connector | None = None,
    ) -> None:
        self._url = url
        self._topic = topic
        self._cache = cache
        self._on_update = on_update
        self._reconnect_delay = reconnect_delay
        self._heartbeat_interval = heartbeat_interval
        self._connector = connector or self._default_connector
        self._state = ConnectionState.DISCONNECTED
        self._reconnects = 0
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnects(self) -> int:
        """Number of reconnect attempts scheduled since start()."""
        return self._reconnects

    async def start(self) -> None:
        if self._task and not self._task.done():
            logger.warning("Upstream stream already running")
            return
        self._task = asyncio.create_task(self._run_loop(), name="upstream-stream")
        logger.info("Upstream stream started: %s (topic %s)", self._url, self._topic)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Upstream stream stopped")

    async def connect(self) -> bool:
        """Run one connection session: open, subscribe, receive until closed.

        Returns False without doing anything unless the manager is
        DISCONNECTED, True once a session has run and ended. Transport
        failures are logged here and never propagate; the caller decides
        whether to retry.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            logger.debug("connect() ignored: upstream is %s", self._state.value)
            return False

        self._state = ConnectionState.CONNECTING
        logger.info("Connecting to upstream stream at %s...", self._url)
        try:
            async with self._connector(self._url) as ws:
                self._state = ConnectionState.CONNECTED
                logger.info("Connected to upstream stream at %s", self._url)
                await self._subscribe(ws)
                heartbeat = self._start_heartbeat(ws)
                try:
                    async for raw in ws:
                        self._handle_message(raw)
                finally:
                    if heartbeat is not None:
                        heartbeat.cancel()
                        try:
                            await heartbeat
                        except asyncio.CancelledError:
                            pass
            logger.warning("Upstream stream at %s closed", self._url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self._log_transport_error(e)
        except Exception:
            logger.exception("Upstream session on %s failed", self._url)
        finally:
            self._state = ConnectionState.DISCONNECTED
        return True

    # --- Internal ---

    async def _run_loop(self) -> None:
        """Connect, wait out the fixed delay after every disconnect, repeat."""
        while True:
            if not await self.connect():
                # Another caller holds the session; check again after the delay.
                await asyncio.sleep(self._reconnect_delay)
                continue
            self._reconnects += 1
            logger.warning(
                "Upstream stream disconnected. Attempting to reconnect in %.1f seconds...",
                self._reconnect_delay,
            )
            await asyncio.sleep(self._reconnect_delay)

    def _default_connector(self, url: str) -> AbstractAsyncContextManager[Any]:
        return websockets.connect(url)

    async def _subscribe(self, ws: Any) -> None:
        await ws.send(json.dumps({"op": "subscribe", "args": [self._topic]}))
        logger.info("Sent subscription request: %s", self._topic)

    def _start_heartbeat(self, ws: Any) -> asyncio.Task | None:
        if not self._heartbeat_interval:
            return None
        return asyncio.create_task(self._heartbeat(ws), name="upstream-heartbeat")

    async def _heartbeat(self, ws: Any) -> None:
        # Keeps the venue from idling the connection out. A failed send is
        # left for the receive loop to surface as a close.
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                await ws.send(json.dumps({"op": "ping"}))
            except (OSError, WebSocketException) as e:
                logger.debug("Heartbeat send failed: %s", e)
                return

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("Error processing upstream message: %s", e)
            return
        if not isinstance(message, dict):
            logger.warning("Dropping non-object upstream message: %r", message)
            return

        topic = message.get("topic")
        if topic is None:
            self._handle_control(message)
            return
        if topic != self._topic:
            logger.debug("Ignoring message for topic %s", topic)
            return

        data = message.get("data")
        if not isinstance(data, dict):
            logger.warning("Dropping %s message without a data object", topic)
            return

        logger.debug("Received %s update: %s", topic, data)
        self._cache.replace_ticker(data)
        if self._on_update is not None:
            try:
                self._on_update(TICKER_EVENT, data)
            except Exception:
                logger.exception("Failed to relay %s update", topic)

    def _handle_control(self, message: dict) -> None:
        op = message.get("op")
        if op == "subscribe" and message.get("success") is False:
            logger.warning(
                "Upstream rejected subscription to %s: %s",
                self._topic,
                message.get("ret_msg", "no reason given"),
            )
        elif op in ("subscribe", "pong", "ping"):
            logger.debug("Upstream control reply: %s", message)
        else:
            logger.debug("Ignoring upstream message without topic: %s", message)

    def _log_transport_error(self, error: Exception) -> None:
        text = str(error)
        logger.error("Upstream stream error on %s: %s", self._url, text)
        # Diagnostics only; every transport error takes the same reconnect path.
        if "502" in text:
            logger.error(
                "Upstream 502 Bad Gateway at %s. The server may be temporarily down or the endpoint is wrong.",
                self._url,
            )
        elif "404" in text:
            logger.error(
                "Upstream 404 at %s: subscription endpoint not found. Verify the URL and topic %s.",
                self._url,
                self._topic,
            )
