"""FastAPI application wiring for the quote service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.quotes import (
    QuoteDistributor,
    QuoteFetcher,
    QuoteSettings,
    create_quote_fetcher,
    create_stream_router,
    get_settings,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: QuoteSettings | None = None,
    fetcher: QuoteFetcher | None = None,
) -> FastAPI:
    """Build the app. The distributor and its registry are created once per app."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    fetcher = fetcher or create_quote_fetcher(settings)
    distributor = QuoteDistributor(
        fetcher,
        poll_interval=settings.poll_interval,
        fetch_timeout=settings.fetch_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await distributor.start()
        try:
            yield
        finally:
            await distributor.stop()
            await fetcher.close()

    app = FastAPI(title="Stock Dashboard Quotes", version="0.1.0", lifespan=lifespan)
    app.include_router(create_stream_router(distributor))
    app.state.settings = settings
    app.state.distributor = distributor
    return app


app = create_app()
