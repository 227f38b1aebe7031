"""WebSocket routes."""
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from chat_relay.api.deps import get_event_router, get_ws_hub
from chat_relay.domain.common.types import generate_id
from chat_relay.infra.realtime.ws_manager import WebSocketConnectionHub, make_frame
from chat_relay.services.event_router import EVENT_ERROR, RelayEventRouter

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_frame(text: str) -> tuple[str, object]:
    """Decode a `{"event": ..., "data": ...}` frame. Raises ValueError on malformed input."""
    frame = json.loads(text)
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise ValueError("frame must be an object with a string 'event'")
    return frame["event"], frame.get("data")


@router.websocket("/ws")
async def relay_websocket(
    websocket: WebSocket,
    hub: WebSocketConnectionHub = Depends(get_ws_hub),
    event_router: RelayEventRouter = Depends(get_event_router),
):
    """Bidirectional relay channel. One connection per client; events are processed in arrival order."""
    await websocket.accept()
    connection_id = generate_id()
    await hub.connect(connection_id, websocket, already_accepted=True)
    logger.info(f"✅ [WEBSOCKET] Connection {connection_id} accepted")

    try:
        while True:
            try:
                text = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            except (RuntimeError, ConnectionError) as e:
                # Handle other connection errors (e.g., ConnectionClosedError from websockets library)
                logger.warning(f"⚠️ [WEBSOCKET] Connection error during receive on {connection_id}: {e}")
                break

            if text == "ping":
                try:
                    await websocket.send_text("pong")
                except (WebSocketDisconnect, RuntimeError, ConnectionError):
                    break
                continue

            try:
                event, data = _parse_frame(text)
            except ValueError as e:
                logger.warning(f"⚠️ [WEBSOCKET] Malformed frame from {connection_id}: {e}")
                try:
                    await websocket.send_json(make_frame(EVENT_ERROR, {"error": "malformed frame"}))
                except (WebSocketDisconnect, RuntimeError, ConnectionError):
                    break
                continue

            await event_router.dispatch(connection_id, event, data)
    finally:
        hub.disconnect(connection_id)
        try:
            await event_router.on_disconnect(connection_id)
        except Exception as e:
            logger.warning(f"⚠️ [WEBSOCKET] Error during disconnect cleanup for {connection_id}: {e}")
        logger.info(f"🔌 [WEBSOCKET] Connection {connection_id} closed")
