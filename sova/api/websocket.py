"""WebSocket stream of newly received signals for subscribed users.

Each subscriber is kept with the token it connected with. Every push
re-checks that token against live sessions and subscriptions, so logout,
idle sweeps and lapsed subscriptions cut the feed off.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from sova.errors import AuthorizationError, SovaError
from sova.models import Signal
from sova.services import AccessGateway

logger = logging.getLogger(__name__)

# Close codes for rejected or revoked connections
WS_UNAUTHORIZED = 4401
WS_FORBIDDEN = 4403


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def close_code_for(error: SovaError) -> int:
    """4403 for a missing right, 4401 for a bad or revoked identity."""
    return WS_FORBIDDEN if isinstance(error, AuthorizationError) else WS_UNAUTHORIZED


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "connected", "signal", "ping"
    data: dict[str, Any]
    timestamp: datetime

    def to_json(self) -> str:
        return _orjson_dumps(self.model_dump(mode="json"))


class SignalStream:
    """Subscribers of the live signal feed, keyed by socket."""

    def __init__(self, gateway: AccessGateway):
        self.gateway = gateway
        self._subscribers: dict[WebSocket, str] = {}  # socket -> token
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, websocket: WebSocket, token: str) -> None:
        async with self._lock:
            self._subscribers[websocket] = token
        logger.info(f"Stream subscriber added ({self.connection_count} open)")

    async def unsubscribe(self, websocket: WebSocket) -> None:
        async with self._lock:
            removed = self._subscribers.pop(websocket, None)
        if removed is not None:
            logger.info(f"Stream subscriber removed ({self.connection_count} open)")

    async def send_signal(self, signal: Signal) -> None:
        """Ledger callback: push a new signal to subscribers still entitled to it."""
        async with self._lock:
            subscribers = list(self._subscribers.items())
        if not subscribers:
            return

        text = WebSocketMessage(
            type="signal", data=signal.model_dump(mode="json"), timestamp=_now()
        ).to_json()

        for websocket, token in subscribers:
            try:
                # Not a user request: must not keep an idle session alive
                await self.gateway.authorize_with_subscription(token, touch=False)
            except SovaError as e:
                await self._drop(websocket, close_code_for(e), e.message)
                continue

            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.warning(f"Failed to send signal #{signal.id}: {e}")
                await self.unsubscribe(websocket)

    async def _drop(self, websocket: WebSocket, code: int, reason: str) -> None:
        await self.unsubscribe(websocket)
        logger.info(f"Closing stream subscriber: {reason}")
        try:
            await websocket.close(code=code, reason=reason)
        except Exception as e:
            # Peer already gone
            logger.debug(f"Close failed: {e}")


async def signal_stream_endpoint(websocket: WebSocket, token: Optional[str] = None):
    """Stream new signals. Requires ``?token=`` with an active subscription.

    Message format:
    {
        "type": "signal",
        "data": {"id": 1, "asset": "EURUSD", "signal": "buy", ...},
        "timestamp": "2024-01-01T00:00:00+00:00"
    }
    """
    stream: SignalStream = websocket.app.state.stream

    try:
        user_id = await stream.gateway.authorize_with_subscription(token)
    except SovaError as e:
        await websocket.close(code=close_code_for(e), reason=e.message)
        return

    await websocket.accept()
    await stream.subscribe(websocket, token)

    try:
        await websocket.send_text(WebSocketMessage(
            type="connected",
            data={"message": "Connected to SOVA signal stream", "userId": user_id},
            timestamp=_now(),
        ).to_json())

        # Clients only listen; incoming frames just keep the socket alive
        while websocket.application_state == WebSocketState.CONNECTED:
            try:
                await asyncio.wait_for(websocket.receive_text(), timeout=60.0)
            except asyncio.TimeoutError:
                await websocket.send_text(
                    WebSocketMessage(type="ping", data={}, timestamp=_now()).to_json()
                )

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await stream.unsubscribe(websocket)
