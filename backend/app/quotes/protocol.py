"""Client -> server message parsing for the quote WebSocket."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .models import normalize_symbol

SUBSCRIBE = "subscribe"
UNSUBSCRIBE = "unsubscribe"
MESSAGE_TYPES = frozenset({SUBSCRIBE, UNSUBSCRIBE})


class MalformedMessageError(ValueError):
    """A client frame that cannot be turned into a subscription request."""


@dataclass(frozen=True, slots=True)
class ClientMessage:
    type: str
    symbol: str


def parse_client_message(raw: str | bytes | dict[str, Any]) -> ClientMessage:
    """Decode one client frame into a ClientMessage with a normalized symbol."""
    if isinstance(raw, dict):
        payload: Any = raw
    else:
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            # Deeply nested frames raise RecursionError
            raise MalformedMessageError("frame is not valid JSON") from exc

    if not isinstance(payload, dict):
        raise MalformedMessageError("frame must be a JSON object")

    msg_type = payload.get("type")
    if not isinstance(msg_type, str) or msg_type not in MESSAGE_TYPES:
        raise MalformedMessageError(f"unsupported message type: {msg_type!r}")

    try:
        symbol = normalize_symbol(payload.get("symbol"))
    except ValueError as exc:
        raise MalformedMessageError(f"invalid symbol: {exc}") from exc

    return ClientMessage(type=msg_type, symbol=symbol)
