"""Tests for MassiveQuoteFetcher (mocked)."""

from unittest.mock import MagicMock, patch

import pytest

from app.quotes.interface import QuoteFetchError
from app.quotes.massive_client import MassiveQuoteFetcher


def _make_snapshot(ticker: str, price: float, timestamp_ms: int) -> MagicMock:
    """Create a mock Massive snapshot object."""
    snap = MagicMock()
    snap.ticker = ticker
    snap.todays_change = 1.5
    snap.todays_change_percent = 0.79
    snap.last_trade.price = price
    snap.last_trade.timestamp = timestamp_ms
    snap.day.open = 189.0
    snap.day.high = 191.0
    snap.day.low = 188.5
    snap.day.volume = 1_000_000
    snap.prev_day.close = 189.0
    return snap


def _fetcher_with_client() -> MassiveQuoteFetcher:
    fetcher = MassiveQuoteFetcher(api_key="test-key")
    fetcher._client = MagicMock()  # Skip the lazy RESTClient import
    return fetcher


@pytest.mark.asyncio
class TestMassiveQuoteFetcher:
    """Unit tests for MassiveQuoteFetcher with mocked API."""

    async def test_fetch_maps_snapshot(self):
        fetcher = _fetcher_with_client()
        snaps = [_make_snapshot("AAPL", 190.50, 1707580800000)]

        with patch.object(fetcher, "_fetch_snapshots", return_value=snaps) as mock_fetch:
            quote = await fetcher.fetch_quote("AAPL")

        mock_fetch.assert_called_once_with("AAPL")
        assert quote["symbol"] == "AAPL"
        assert quote["regularMarketPrice"] == 190.50
        assert quote["regularMarketChange"] == 1.5
        assert quote["regularMarketChangePercent"] == 0.79
        assert quote["regularMarketPreviousClose"] == 189.0
        assert quote["regularMarketDayHigh"] == 191.0
        assert quote["regularMarketVolume"] == 1_000_000
        assert quote["timestamp"] == 1707580800000

    async def test_ignores_other_tickers(self):
        fetcher = _fetcher_with_client()
        snaps = [_make_snapshot("MSFT", 420.0, 1), _make_snapshot("AAPL", 190.0, 2)]

        with patch.object(fetcher, "_fetch_snapshots", return_value=snaps):
            quote = await fetcher.fetch_quote("AAPL")

        assert quote["regularMarketPrice"] == 190.0

    async def test_empty_response_raises(self):
        fetcher = _fetcher_with_client()
        with patch.object(fetcher, "_fetch_snapshots", return_value=[]):
            with pytest.raises(QuoteFetchError):
                await fetcher.fetch_quote("NOPE")

    async def test_missing_last_trade_raises(self):
        fetcher = _fetcher_with_client()
        snap = _make_snapshot("AAPL", 190.0, 1)
        snap.last_trade = None

        with patch.object(fetcher, "_fetch_snapshots", return_value=[snap]):
            with pytest.raises(QuoteFetchError):
                await fetcher.fetch_quote("AAPL")

    async def test_api_error_propagates(self):
        """Errors surface to the caller; the distributor isolates them."""
        fetcher = _fetcher_with_client()
        with patch.object(fetcher, "_fetch_snapshots", side_effect=Exception("network error")):
            with pytest.raises(Exception, match="network error"):
                await fetcher.fetch_quote("AAPL")

    async def test_fetch_snapshots_requests_single_ticker(self):
        fetcher = _fetcher_with_client()
        fetcher._client.get_snapshot_all.return_value = []

        with patch("massive.rest.models.SnapshotMarketType") as market_type:
            fetcher._fetch_snapshots("AAPL")

        fetcher._client.get_snapshot_all.assert_called_once_with(
            market_type=market_type.STOCKS, tickers=["AAPL"]
        )

    async def test_close_is_idempotent(self):
        fetcher = _fetcher_with_client()
        await fetcher.close()
        await fetcher.close()  # Should not raise
        assert fetcher._client is None
