"""GBM-based simulated quote provider."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any

import numpy as np

from .interface import QuoteFetcher
from .seed_prices import (
    COMPANY_NAMES,
    DEFAULT_PARAMS,
    SEED_PRICES,
    TICKER_PARAMS,
    UNKNOWN_PRICE_RANGE,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _TickerState:
    price: float
    previous_close: float
    open: float
    day_high: float
    day_low: float
    volume: int
    mu: float
    sigma: float


class SimulatedQuoteFetcher(QuoteFetcher):
    """Quote provider that walks each symbol's price with Geometric Brownian Motion.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Each fetch advances the requested symbol by one step, so a symbol moves
    once per poll. Symbols are independent of each other; a symbol is seeded
    the first time it is requested.
    """

    # 5s expressed as a fraction of a trading year
    # 252 trading days * 6.5 hours/day * 3600 seconds/hour = 5,896,800 seconds
    TRADING_SECONDS_PER_YEAR = 252 * 6.5 * 3600
    DEFAULT_DT = 5.0 / TRADING_SECONDS_PER_YEAR

    def __init__(
        self,
        dt: float = DEFAULT_DT,
        event_probability: float = 0.001,
        latency: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self._dt = dt
        self._event_prob = event_probability
        self._latency = latency
        self._rng = np.random.default_rng(seed)
        self._tickers: dict[str, _TickerState] = {}

    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        if self._latency:
            await asyncio.sleep(self._latency)
        state = self._tickers.get(symbol)
        if state is None:
            state = self._seed(symbol)
        else:
            self._step(symbol, state)
        return self._to_quote(symbol, state)

    # --- Internals ---

    def _seed(self, symbol: str) -> _TickerState:
        price = SEED_PRICES.get(symbol)
        if price is None:
            price = float(self._rng.uniform(*UNKNOWN_PRICE_RANGE))
        params = TICKER_PARAMS.get(symbol, DEFAULT_PARAMS)
        state = _TickerState(
            price=price,
            previous_close=price,
            open=price,
            day_high=price,
            day_low=price,
            volume=0,
            mu=params["mu"],
            sigma=params["sigma"],
        )
        self._tickers[symbol] = state
        logger.debug("Simulator: seeded %s at %.2f", symbol, price)
        return state

    def _step(self, symbol: str, state: _TickerState) -> None:
        z = float(self._rng.standard_normal())
        drift = (state.mu - 0.5 * state.sigma**2) * self._dt
        diffusion = state.sigma * math.sqrt(self._dt) * z
        state.price *= math.exp(drift + diffusion)

        # Random event: occasional 2-5% jump
        if self._rng.random() < self._event_prob:
            shock = float(self._rng.uniform(0.02, 0.05)) * float(self._rng.choice([-1, 1]))
            state.price *= 1 + shock
            logger.debug("Random event on %s: %+.1f%%", symbol, shock * 100)

        state.day_high = max(state.day_high, state.price)
        state.day_low = min(state.day_low, state.price)
        state.volume += int(self._rng.integers(100, 10_000))

    @staticmethod
    def _to_quote(symbol: str, state: _TickerState) -> dict[str, Any]:
        price = round(state.price, 2)
        change = price - state.previous_close
        change_percent = change / state.previous_close * 100 if state.previous_close else 0.0
        return {
            "symbol": symbol,
            "shortName": COMPANY_NAMES.get(symbol, symbol),
            "regularMarketPrice": price,
            "regularMarketChange": round(change, 4),
            "regularMarketChangePercent": round(change_percent, 4),
            "regularMarketPreviousClose": round(state.previous_close, 2),
            "regularMarketOpen": round(state.open, 2),
            "regularMarketDayHigh": round(state.day_high, 2),
            "regularMarketDayLow": round(state.day_low, 2),
            "regularMarketVolume": state.volume,
            "currency": "USD",
            "timestamp": int(time.time() * 1000),
        }
