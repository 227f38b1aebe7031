"""WebSocket connection hub: connection id -> socket, with JSON event frames."""
import logging
from typing import Any, Dict, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def make_frame(event: str, data: Any) -> dict:
    return {"event": event, "data": data}


class WebSocketConnectionHub:
    """EventTransport over FastAPI WebSockets.

    Sends are best-effort: a socket that fails to send is dropped from the hub and the send
    reports False. Registry cleanup for that connection happens when its receive loop ends.
    """

    def __init__(self):
        # Map connection_id -> websocket
        self.connections: Dict[str, WebSocket] = {}

    async def connect(self, connection_id: str, websocket: WebSocket, already_accepted: bool = False) -> None:
        """Track a WebSocket connection.

        Args:
            connection_id: Unique id for this network session
            websocket: WebSocket connection
            already_accepted: If True, assumes websocket.accept() was already called
        """
        if not already_accepted:
            await websocket.accept()
        self.connections[connection_id] = websocket

    def disconnect(self, connection_id: str) -> None:
        """Forget a WebSocket connection."""
        self.connections.pop(connection_id, None)

    def connection_ids(self) -> list[str]:
        return list(self.connections)

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        """Send one event to a connection."""
        websocket = self.connections.get(connection_id)
        if websocket is None:
            logger.warning(f"⚠️ [WEBSOCKET] Connection {connection_id} not found, cannot send: {event}")
            return False
        try:
            await websocket.send_json(make_frame(event, data))
            return True
        except (RuntimeError, ConnectionError) as e:
            # Connection closed errors (e.g., ConnectionClosedError from websockets library)
            logger.warning(f"⚠️ [WEBSOCKET] Connection closed for {connection_id}: {e}")
        except Exception as e:
            logger.error(f"❌ [WEBSOCKET] Failed to send {event} to {connection_id}: {e}")
        self.disconnect(connection_id)
        return False

    async def broadcast(self, event: str, data: Any, exclude: Iterable[str] = ()) -> int:
        """Send to every tracked connection except those in `exclude`."""
        skip = set(exclude)
        sent = 0
        for connection_id in self.connection_ids():
            if connection_id in skip:
                continue
            if await self.send(connection_id, event, data):
                sent += 1
        return sent
