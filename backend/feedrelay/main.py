"""FastAPI application and process entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import RelaySettings
from .market import create_market_services, create_stream_router

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    """Build the app. Upstream connections open in the lifespan, not here."""
    settings = settings or RelaySettings.from_env()
    services = create_market_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Neither start() waits on the network, so subscribers are served
        # while the snapshot and the stream are still coming up.
        await services.fetcher.start()
        await services.upstream.start()
        try:
            yield
        finally:
            await services.upstream.stop()
            await services.fetcher.stop()
            await services.hub.close()

    app = FastAPI(title="feedrelay", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        allow_credentials=True,
    )
    app.include_router(create_stream_router(services, settings.allowed_origin))
    return app


def main() -> None:
    settings = RelaySettings.from_env()
    configure_logging(settings.log_level)
    logger.info("Starting feedrelay on %s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
