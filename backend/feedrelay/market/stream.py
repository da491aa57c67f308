"""WebSocket endpoint for downstream subscribers."""

from __future__ import annotations

import logging
import uuid
from functools import partial

from fastapi import APIRouter, WebSocket

from .factory import MarketServices

logger = logging.getLogger(__name__)


def create_stream_router(services: MarketServices, allowed_origin: str) -> APIRouter:
    """Create the streaming router bound to one set of market services.

    This factory pattern lets us inject the services without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.websocket("/market")
    async def stream_market(websocket: WebSocket) -> None:
        """Real-time market feed.

        On connect the client receives the cached state:

            {"event": "candlestickData", "data": [{"timestamp": ..., "open": ...}, ...]}
            {"event": "orderBookData", "data": {"bids": [...], "asks": [...]}}

        followed by every upstream update as it arrives. Client frames are
        ignored; the connection only matters for its lifetime.
        """
        origin = websocket.headers.get("origin")
        if origin is not None and origin != allowed_origin:
            logger.warning("Rejected subscriber from origin %s", origin)
            await websocket.close(code=1008)
            return

        await websocket.accept()
        subscriber_id = uuid.uuid4().hex
        client = websocket.client.host if websocket.client else "unknown"
        logger.info("New client connected: %s (%s)", client, subscriber_id)

        # 1011: the hub dropped this subscriber after a failed send.
        services.hub.on_join(subscriber_id, websocket.send_text, partial(websocket.close, code=1011))
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            services.hub.on_leave(subscriber_id)
            logger.info("Client disconnected: %s (%s)", client, subscriber_id)

    @router.get("/status")
    async def stream_status() -> dict:
        """Upstream connection state and cache summary."""
        state = services.cache.read()
        return {
            "upstream": services.upstream.state.value,
            "reconnects": services.upstream.reconnects,
            "subscribers": services.hub.subscriber_count,
            "candles": len(state.candles),
            "has_ticker": state.ticker is not None,
            "version": state.version,
        }

    return router
