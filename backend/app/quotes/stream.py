"""WebSocket endpoint and HTTP routes for live quotes."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket
from starlette.websockets import WebSocketState

from .distributor import QuoteDistributor
from .models import normalize_symbol

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """QuoteSocket adapter over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, payload: dict[str, Any]) -> None:
        await self._ws.send_text(json.dumps(payload))


def create_stream_router(distributor: QuoteDistributor) -> APIRouter:
    """Create the quote router bound to a distributor.

    This factory pattern lets us inject the QuoteDistributor without globals.
    """
    router = APIRouter(tags=["quotes"])

    @router.websocket("/ws")
    async def quote_socket(websocket: WebSocket) -> None:
        """Live quote channel.

        Clients send ``{"type": "subscribe" | "unsubscribe", "symbol": "AAPL"}``
        frames and receive ``{"type": "quote", ...}`` frames for every symbol
        they are subscribed to. Subscriptions live and die with the socket.
        """
        await websocket.accept()
        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        session = distributor.open_session(WebSocketConnection(websocket))
        logger.info("WebSocket client connected: %s (session #%d)", client, session.id)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(
                        "WebSocket client disconnected: %s (code %s)", client, message.get("code")
                    )
                    break
                frame = message.get("text")
                if frame is None:
                    frame = message.get("bytes")
                if frame is not None:
                    session.handle_message(frame)
        finally:
            distributor.close_session(session)

    @router.get("/api/stocks/{symbol}")
    async def get_stock_quote(symbol: str) -> dict[str, Any]:
        """One-off quote lookup through the same provider the stream uses."""
        try:
            key = normalize_symbol(symbol)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        snapshot = await distributor.fetch_snapshot(key)
        if not snapshot.ok or snapshot.data is None:
            raise HTTPException(status_code=500, detail="Failed to fetch stock data")
        return snapshot.data

    @router.get("/api/quotes/stats")
    async def get_quote_stats() -> dict[str, Any]:
        return distributor.stats()

    return router
