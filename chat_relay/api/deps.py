"""API dependencies."""
from fastapi import Request, WebSocket

from chat_relay.infra.realtime.ws_manager import WebSocketConnectionHub
from chat_relay.services.event_router import RelayEventRouter
from chat_relay.services.relay_state import RelayState


def get_relay_state(request: Request) -> RelayState:
    """Relay state built by the application lifespan."""
    return request.app.state.relay


def get_ws_hub(websocket: WebSocket) -> WebSocketConnectionHub:
    return websocket.app.state.hub


def get_event_router(websocket: WebSocket) -> RelayEventRouter:
    return websocket.app.state.event_router
