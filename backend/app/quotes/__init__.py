"""Real-time quote distribution subsystem.

Public API:
    QuoteSnapshot        - One fetch result (quote or error) for one symbol
    SubscriptionRegistry - Symbol -> subscribed sessions index
    ConnectionSession    - Per-socket subscription state and cleanup
    QuoteDistributor     - Polling loop that fetches once per symbol and fans out
    QuoteFetcher         - Abstract interface for quote providers
    QuoteSettings        - Environment-driven configuration
    create_quote_fetcher - Factory that selects simulator or Massive
    create_stream_router - FastAPI router factory for the /ws endpoint
"""

from .config import QuoteSettings, get_settings
from .distributor import QuoteDistributor
from .factory import create_quote_fetcher
from .interface import QuoteFetcher, QuoteFetchError
from .models import QuoteSnapshot, normalize_symbol
from .protocol import MalformedMessageError, parse_client_message
from .registry import SubscriptionRegistry
from .session import ConnectionSession
from .stream import create_stream_router

__all__ = [
    "QuoteSnapshot",
    "SubscriptionRegistry",
    "ConnectionSession",
    "QuoteDistributor",
    "QuoteFetcher",
    "QuoteFetchError",
    "QuoteSettings",
    "MalformedMessageError",
    "create_quote_fetcher",
    "create_stream_router",
    "get_settings",
    "normalize_symbol",
    "parse_client_message",
]
