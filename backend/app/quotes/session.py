"""Per-socket subscription session."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from .models import QuoteSnapshot, normalize_symbol
from .protocol import SUBSCRIBE, ClientMessage, MalformedMessageError, parse_client_message
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)


class QuoteSocket(Protocol):
    """The slice of a client socket the distribution core needs."""

    @property
    def is_open(self) -> bool: ...

    async def send_json(self, payload: dict[str, Any]) -> None: ...


class SessionState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ConnectionSession:
    """Adapts one client socket to the subscribe/unsubscribe protocol.

    The session owns its set of subscribed symbols; the registry only indexes
    it. ``close()`` is the single cleanup path and must run for every socket,
    however it ended.
    """

    def __init__(
        self,
        socket: QuoteSocket,
        registry: SubscriptionRegistry,
        on_subscribe: Callable[[ConnectionSession, str], None] | None = None,
        on_close: Callable[[ConnectionSession], None] | None = None,
    ) -> None:
        self.id = next(_session_ids)
        self._socket = socket
        self._registry = registry
        self._on_subscribe = on_subscribe
        self._on_close = on_close
        self._symbols: set[str] = set()
        self.state = SessionState.OPEN

    def __repr__(self) -> str:
        return f"<ConnectionSession #{self.id} {self.state.value} symbols={sorted(self._symbols)}>"

    @property
    def symbols(self) -> frozenset[str]:
        return frozenset(self._symbols)

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def is_open(self) -> bool:
        """True while the session is open and its socket can still be written to."""
        return not self.closed and self._socket.is_open

    def is_subscribed(self, symbol: str) -> bool:
        try:
            return normalize_symbol(symbol) in self._symbols
        except ValueError:
            return False

    def subscribe(self, symbol: str) -> bool:
        """Track a symbol and request an immediate snapshot. Returns False if already tracked."""
        if self.closed:
            return False
        key = normalize_symbol(symbol)
        if key in self._symbols:
            return False
        self._symbols.add(key)
        self._registry.add(key, self)
        logger.info("Session #%d subscribed to %s", self.id, key)
        if self._on_subscribe is not None:
            self._on_subscribe(self, key)
        return True

    def unsubscribe(self, symbol: str) -> bool:
        """Stop tracking a symbol. Returns False if it was not tracked."""
        if self.closed:
            return False
        try:
            key = normalize_symbol(symbol)
        except ValueError:
            return False
        was_tracked = key in self._symbols
        self._symbols.discard(key)
        self._registry.remove(key, self)
        if was_tracked:
            logger.info("Session #%d unsubscribed from %s", self.id, key)
        return was_tracked

    def handle_message(self, raw: str | bytes | dict[str, Any]) -> ClientMessage | None:
        """Apply one client frame. Malformed frames are logged and dropped."""
        if self.closed:
            return None
        try:
            message = parse_client_message(raw)
        except MalformedMessageError as e:
            logger.warning("Session #%d: dropping malformed message: %s", self.id, e)
            return None

        if message.type == SUBSCRIBE:
            self.subscribe(message.symbol)
        else:
            self.unsubscribe(message.symbol)
        return message

    def close(self) -> None:
        """Enter the terminal state and remove this session from every registry entry."""
        already_closed = self.closed
        self.state = SessionState.CLOSED
        pruned = self._registry.remove_connection_everywhere(self)
        self._symbols.clear()
        if not already_closed:
            logger.info("Session #%d closed (pruned symbols: %s)", self.id, pruned or "none")
            if self._on_close is not None:
                self._on_close(self)

    async def send(self, snapshot: QuoteSnapshot) -> bool:
        """Write a snapshot to the socket if it is still open. Returns whether it was sent."""
        if not self.is_open:
            return False
        await self._socket.send_json(snapshot.to_message())
        return True
