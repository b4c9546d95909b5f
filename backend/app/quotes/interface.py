"""Abstract interface for upstream quote providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class QuoteFetchError(Exception):
    """The provider answered but returned nothing usable for a symbol."""


class QuoteFetcher(ABC):
    """Contract for quote providers.

    A fetcher is a point-in-time lookup: given a symbol it returns the
    provider's raw quote payload or raises. It keeps no subscription state of
    its own; the QuoteDistributor decides what to fetch and when.

    Lifecycle:
        fetcher = create_quote_fetcher(settings)
        quote = await fetcher.fetch_quote("AAPL")
        ...
        await fetcher.close()
    """

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        """Return the latest quote for an already-normalized symbol.

        May raise any exception (network errors, rate limits, unknown
        symbols). Callers are responsible for isolating failures.
        """

    async def close(self) -> None:
        """Release provider resources. Safe to call multiple times."""
