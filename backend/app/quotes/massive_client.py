"""Massive (Polygon.io) quote provider for real market data."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .interface import QuoteFetcher, QuoteFetchError

logger = logging.getLogger(__name__)


def _attr(obj: Any, name: str) -> Any:
    return getattr(obj, name, None) if obj is not None else None


class MassiveQuoteFetcher(QuoteFetcher):
    """QuoteFetcher backed by the Massive (Polygon.io) REST snapshot API.

    Each fetch is one GET /v2/snapshot/locale/us/markets/stocks/tickers call
    for a single ticker. The distributor already dedupes per symbol, so the
    provider sees one request per subscribed symbol per poll.

    Rate limits:
      - Free tier: 5 req/min, so keep the subscribed set small or poll slowly
      - Paid tiers: higher limits
    """

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key
        self._client: Any = None  # Created on first fetch

    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        if self._client is None:
            # Lazy import: only needed when real market data is configured
            from massive import RESTClient

            self._client = RESTClient(api_key=self._api_key)
            logger.info("Massive REST client created")

        # The Massive RESTClient is synchronous; run in a thread to
        # avoid blocking the event loop.
        snapshots = await asyncio.to_thread(self._fetch_snapshots, symbol)
        for snap in snapshots or ():
            if _attr(snap, "ticker") == symbol:
                return self._to_quote(symbol, snap)
        raise QuoteFetchError(f"no snapshot returned for {symbol}")

    async def close(self) -> None:
        self._client = None

    def _fetch_snapshots(self, symbol: str) -> list:
        """Synchronous call to the Massive REST API. Runs in a thread."""
        from massive.rest.models import SnapshotMarketType

        return self._client.get_snapshot_all(
            market_type=SnapshotMarketType.STOCKS,
            tickers=[symbol],
        )

    @staticmethod
    def _to_quote(symbol: str, snap: Any) -> dict[str, Any]:
        last_trade = _attr(snap, "last_trade")
        price = _attr(last_trade, "price")
        if price is None:
            raise QuoteFetchError(f"snapshot for {symbol} has no last trade")

        day = _attr(snap, "day")
        prev_day = _attr(snap, "prev_day")
        timestamp = _attr(last_trade, "timestamp")
        return {
            "symbol": symbol,
            "regularMarketPrice": price,
            "regularMarketChange": _attr(snap, "todays_change"),
            "regularMarketChangePercent": _attr(snap, "todays_change_percent"),
            "regularMarketPreviousClose": _attr(prev_day, "close"),
            "regularMarketOpen": _attr(day, "open"),
            "regularMarketDayHigh": _attr(day, "high"),
            "regularMarketDayLow": _attr(day, "low"),
            "regularMarketVolume": _attr(day, "volume"),
            "currency": "USD",
            # Massive timestamps are Unix milliseconds
            "timestamp": int(timestamp) if timestamp is not None else None,
        }
