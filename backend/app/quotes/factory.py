"""Factory for creating quote fetchers."""

from __future__ import annotations

import logging

from .config import QuoteSettings
from .interface import QuoteFetcher

logger = logging.getLogger(__name__)


def create_quote_fetcher(settings: QuoteSettings) -> QuoteFetcher:
    """Create the appropriate quote provider for the configured settings.

    - massive_api_key set and non-empty → MassiveQuoteFetcher (real market data)
    - Otherwise → SimulatedQuoteFetcher (GBM simulation)
    """
    api_key = settings.massive_api_key.strip()

    if api_key:
        from .massive_client import MassiveQuoteFetcher

        logger.info("Quote provider: Massive API (real data)")
        return MassiveQuoteFetcher(api_key=api_key)
    else:
        from .simulator import SimulatedQuoteFetcher

        logger.info("Quote provider: GBM Simulator")
        return SimulatedQuoteFetcher()
