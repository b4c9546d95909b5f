"""Pytest configuration and shared fakes for the quote service."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.quotes.distributor import QuoteDistributor
from app.quotes.interface import QuoteFetcher


class FakeSocket:
    """In-memory QuoteSocket that records every frame sent to it."""

    def __init__(self, is_open: bool = True, fail: bool = False) -> None:
        self.is_open = is_open
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionResetError("socket reset")
        self.sent.append(payload)

    def quotes(self, symbol: str | None = None) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["type"] == "quote" and (symbol is None or m["symbol"] == symbol)]


class StubFetcher(QuoteFetcher):
    """QuoteFetcher that counts calls and can fail or stall per symbol."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.failing = set(failing or ())
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False

    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        self.calls.append(symbol)
        gate = self.gates.pop(symbol, None)
        if gate is not None:
            await gate.wait()
        if symbol in self.failing:
            raise RuntimeError(f"upstream error for {symbol}")
        return {"symbol": symbol, "regularMarketPrice": 100.0 + len(self.calls)}

    async def close(self) -> None:
        self.closed = True

    def count(self, symbol: str) -> int:
        return self.calls.count(symbol)

    def stall(self, symbol: str) -> asyncio.Event:
        """Block the next fetch of a symbol until the returned event is set."""
        gate = asyncio.Event()
        self.gates[symbol] = gate
        return gate


async def settle(distributor: QuoteDistributor) -> None:
    """Wait for every in-flight one-shot push to finish."""
    while distributor._pending:
        await asyncio.gather(*list(distributor._pending))


@pytest.fixture
def fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def distributor(fetcher: StubFetcher) -> QuoteDistributor:
    # Long interval: tests drive ticks by hand
    return QuoteDistributor(fetcher, poll_interval=60.0, fetch_timeout=1.0)


@pytest.fixture
def make_socket():
    """Factory for FakeSocket instances."""
    return FakeSocket


@pytest.fixture
def wait_for_pushes():
    return settle
