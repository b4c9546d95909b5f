"""In-memory index of which connections want which symbols."""

from __future__ import annotations

from collections.abc import Hashable

from .models import normalize_symbol


class SubscriptionRegistry:
    """Mapping of symbol -> set of interested connections.

    The registry indexes connections, it does not own them. A symbol key is
    present only while its set is non-empty, so ``active_symbols()`` is always
    exactly the fetch worklist.

    All access happens on the event loop thread; no locking.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[Hashable]] = {}

    def add(self, symbol: str, connection: Hashable) -> None:
        """Subscribe a connection to a symbol. No-op if already subscribed.

        Raises ValueError for a blank or non-string symbol.
        """
        key = normalize_symbol(symbol)
        self._subscribers.setdefault(key, set()).add(connection)

    def remove(self, symbol: str, connection: Hashable) -> None:
        """Unsubscribe a connection. No-op if the pair is not present or the symbol is invalid."""
        try:
            key = normalize_symbol(symbol)
        except ValueError:
            return
        connections = self._subscribers.get(key)
        if connections is None:
            return
        connections.discard(connection)
        if not connections:
            del self._subscribers[key]

    def remove_connection_everywhere(self, connection: Hashable) -> list[str]:
        """Drop a connection from every symbol. Returns the symbols pruned as a result."""
        pruned: list[str] = []
        for symbol, connections in list(self._subscribers.items()):
            connections.discard(connection)
            if not connections:
                del self._subscribers[symbol]
                pruned.append(symbol)
        return pruned

    def active_symbols(self) -> set[str]:
        """Symbols with at least one subscriber."""
        return set(self._subscribers)

    def connections_for(self, symbol: str) -> set[Hashable]:
        """Current subscribers of a symbol (a copy; empty if none)."""
        try:
            key = normalize_symbol(symbol)
        except ValueError:
            return set()
        return set(self._subscribers.get(key, ()))

    def connection_count(self) -> int:
        """Number of distinct connections holding at least one subscription."""
        seen: set[Hashable] = set()
        for connections in self._subscribers.values():
            seen.update(connections)
        return len(seen)

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, symbol: object) -> bool:
        try:
            return normalize_symbol(symbol) in self._subscribers
        except ValueError:
            return False
