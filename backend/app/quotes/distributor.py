"""Polling loop that fans quote snapshots out to subscribed sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .interface import QuoteFetcher
from .models import QuoteSnapshot, now_ms
from .registry import SubscriptionRegistry
from .session import ConnectionSession, QuoteSocket

logger = logging.getLogger(__name__)


class QuoteDistributor:
    """Process-wide quote fan-out service.

    Every ``poll_interval`` seconds it fetches each actively-subscribed symbol
    exactly once, however many sessions want it, and pushes the result to
    whoever is subscribed when the fetch completes. Each symbol is fetched and
    broadcast independently, so a slow or failing symbol never holds up the
    others.

    Lifecycle:
        distributor = QuoteDistributor(fetcher)
        await distributor.start()
        session = distributor.open_session(socket)
        session.handle_message('{"type": "subscribe", "symbol": "aapl"}')
        ...
        distributor.close_session(session)
        await distributor.stop()
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        registry: SubscriptionRegistry | None = None,
        poll_interval: float = 5.0,
        fetch_timeout: float | None = 10.0,
    ) -> None:
        self._fetcher = fetcher
        self.registry = registry if registry is not None else SubscriptionRegistry()
        self._interval = poll_interval
        self._fetch_timeout = fetch_timeout
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()  # in-flight one-shot pushes
        self._sessions: set[ConnectionSession] = set()

        self._ticks = 0
        self._fetches = 0
        self._fetch_failures = 0
        self._messages_sent = 0
        self._send_failures = 0

    # --- Lifecycle ---

    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_loop(), name="quote-distributor")
        logger.info("Quote distributor started: %.1fs interval", self._interval)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()
        logger.info("Quote distributor stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # --- Sessions ---

    def open_session(self, socket: QuoteSocket) -> ConnectionSession:
        """Register a freshly opened socket. The new session starts with no subscriptions."""
        session = ConnectionSession(
            socket,
            self.registry,
            on_subscribe=self._schedule_initial_push,
            on_close=self._sessions.discard,
        )
        self._sessions.add(session)
        logger.info("Session #%d opened (%d open)", session.id, len(self._sessions))
        return session

    def close_session(self, session: ConnectionSession) -> None:
        """Tear down a session after its socket closed, cleanly or not."""
        session.close()
        self._sessions.discard(session)

    # --- Polling ---

    async def tick(self) -> None:
        """Run one polling cycle. Never raises."""
        symbols = self.registry.active_symbols()
        if not symbols:
            return

        self._ticks += 1
        tick_ts = now_ms()
        ordered = sorted(symbols)
        results = await asyncio.gather(
            *(self._fetch_and_broadcast(symbol, tick_ts) for symbol in ordered),
            return_exceptions=True,
        )
        for symbol, result in zip(ordered, results):
            if isinstance(result, Exception):
                logger.error("Broadcast for %s failed: %r", symbol, result)
        logger.debug("Tick %d: %d symbols", self._ticks, len(symbols))

    async def push_initial(self, session: ConnectionSession, symbol: str) -> bool:
        """Fetch one symbol and send it to a single new subscriber. Returns whether it was sent."""
        snapshot = await self.fetch_snapshot(symbol)
        # The session may have gone away or unsubscribed while the fetch was in flight
        if not session.is_open or not session.is_subscribed(symbol):
            return False
        return await self._deliver(session, snapshot)

    async def fetch_snapshot(self, symbol: str, timestamp: int | None = None) -> QuoteSnapshot:
        """Fetch one symbol, converting any failure into an error snapshot."""
        self._fetches += 1
        try:
            data = await asyncio.wait_for(self._fetcher.fetch_quote(symbol), timeout=self._fetch_timeout)
        except Exception as e:
            self._fetch_failures += 1
            logger.warning("Quote fetch failed for %s: %r", symbol, e)
            return QuoteSnapshot.failure(symbol, timestamp=timestamp)
        return QuoteSnapshot.success(symbol, data, timestamp=timestamp)

    async def broadcast(self, snapshot: QuoteSnapshot) -> int:
        """Send a snapshot to the symbol's current subscribers. Returns how many received it."""
        # Read subscribers now, not when the fetch started
        sessions = self.registry.connections_for(snapshot.symbol)
        if not sessions:
            return 0
        sent = await asyncio.gather(*(self._deliver(session, snapshot) for session in sessions))
        return sum(sent)

    def stats(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "poll_interval": self._interval,
            "connections": len(self._sessions),
            "active_symbols": sorted(self.registry.active_symbols()),
            "ticks": self._ticks,
            "fetches": self._fetches,
            "fetch_failures": self._fetch_failures,
            "messages_sent": self._messages_sent,
            "send_failures": self._send_failures,
        }

    # --- Internal ---

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Quote distributor tick failed")

    async def _fetch_and_broadcast(self, symbol: str, tick_ts: int) -> int:
        snapshot = await self.fetch_snapshot(symbol, timestamp=tick_ts)
        return await self.broadcast(snapshot)

    async def _deliver(self, session: ConnectionSession, snapshot: QuoteSnapshot) -> bool:
        try:
            sent = await session.send(snapshot)
        except Exception as e:
            # The socket's own close handler will prune the registry
            self._send_failures += 1
            logger.warning("Send to session #%d failed for %s: %r", session.id, snapshot.symbol, e)
            return False
        if sent:
            self._messages_sent += 1
        return sent

    def _schedule_initial_push(self, session: ConnectionSession, symbol: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self.push_initial(session, symbol), name=f"initial-push-{symbol}"
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
