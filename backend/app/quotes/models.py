"""Data models for quote distribution."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

FETCH_FAILED = "Failed to fetch data"


def now_ms() -> int:
    """Current wall-clock time as Unix milliseconds."""
    return int(time.time() * 1000)


def normalize_symbol(symbol: Any) -> str:
    """Return the registry key for a ticker: stripped and uppercased.

    Raises ValueError for anything that is not a non-empty string.
    """
    if not isinstance(symbol, str):
        raise ValueError(f"symbol must be a string, got {type(symbol).__name__}")
    normalized = symbol.strip().upper()
    if not normalized:
        raise ValueError("symbol must not be empty")
    return normalized


@dataclass(frozen=True, slots=True)
class QuoteSnapshot:
    """One fetch result for one symbol, pushed once and then discarded."""

    symbol: str
    data: dict[str, Any] | None = None
    error: str | None = None
    timestamp: int = field(default_factory=now_ms)  # Unix milliseconds

    @classmethod
    def success(cls, symbol: str, data: dict[str, Any], timestamp: int | None = None) -> QuoteSnapshot:
        return cls(symbol=symbol, data=data, timestamp=timestamp or now_ms())

    @classmethod
    def failure(
        cls, symbol: str, error: str = FETCH_FAILED, timestamp: int | None = None
    ) -> QuoteSnapshot:
        return cls(symbol=symbol, data=None, error=error, timestamp=timestamp or now_ms())

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_message(self) -> dict[str, Any]:
        """Serialize as a server -> client ``quote`` frame."""
        return {
            "type": "quote",
            "symbol": self.symbol,
            "data": self.data if self.error is None else None,
            "error": self.error,
            "timestamp": self.timestamp,
        }
