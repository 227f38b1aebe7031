"""
Inbound event routing: one entry point for every event a client connection can send.

Maps transport events onto relay components and emits the outbound events:
- join              -> registry, presence broadcast, online snapshot, token warm-load
- message           -> MessageRelay, answered with messageResponse
- registerPushToken -> TokenStoreAdapter, answered with pushTokenResponse
- statusUpdate      -> StatusPropagator (no direct response)
- typing/stopTyping -> PresenceBroadcaster (no state change)
- disconnect        -> registry removal, offline broadcast
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from chat_relay.domain.relay.models import PresenceKind, PushTokenRegistration, StatusUpdate
from chat_relay.services.relay_state import RelayState

logger = logging.getLogger(__name__)

EVENT_MESSAGE_RESPONSE = "messageResponse"
EVENT_PUSH_TOKEN_RESPONSE = "pushTokenResponse"
EVENT_ERROR = "error"

Handler = Callable[[str, Any], Awaitable[None]]


def _identity_from(data: Any) -> Optional[str]:
    """Accept either a bare identity string or {"identity": ...}."""
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get("identity")
        return value if isinstance(value, str) and value else None
    return None


class RelayEventRouter:
    """Dispatches (connection_id, event, data) triples to the relay components in `state`."""

    def __init__(self, state: RelayState):
        self.state = state
        self._handlers: Dict[str, Handler] = {
            "join": self.on_join,
            "message": self.on_message,
            "registerPushToken": self.on_register_push_token,
            "statusUpdate": self.on_status_update,
            "typing": self.on_typing,
            "stopTyping": self.on_stop_typing,
        }

    async def dispatch(self, connection_id: str, event: str, data: Any) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning("Unknown event %r from %s", event, connection_id)
            await self.state.transport.send(connection_id, EVENT_ERROR, {"error": f"unknown event: {event}"})
            return
        await handler(connection_id, data)

    async def on_join(self, connection_id: str, data: Any) -> Optional[list[str]]:
        identity = _identity_from(data)
        if identity is None:
            await self.state.transport.send(connection_id, EVENT_ERROR, {"error": "join requires an identity"})
            return None
        self.state.registry.register(connection_id, identity)
        logger.info("User %s joined on %s", identity, connection_id)
        await self.state.presence.broadcast_presence(identity, PresenceKind.ONLINE, exclude=connection_id)
        snapshot = await self.state.presence.send_online_snapshot(connection_id)
        self.state.tokens.warm(identity)
        return snapshot

    async def on_message(self, connection_id: str, data: Any) -> None:
        ack = await self.state.relay.ingest(data, connection_id=connection_id)
        await self.state.transport.send(connection_id, EVENT_MESSAGE_RESPONSE, ack.to_wire())

    async def on_register_push_token(self, connection_id: str, data: Any) -> None:
        try:
            registration = PushTokenRegistration.model_validate(data if isinstance(data, dict) else {})
        except PydanticValidationError:
            registration = PushTokenRegistration()
        identity = registration.identity or self.state.registry.lookup_identity(connection_id)
        if await self.state.tokens.save(identity, registration.token):
            response = {"success": True}
        else:
            response = {"success": False, "error": "identity and token are required"}
        await self.state.transport.send(connection_id, EVENT_PUSH_TOKEN_RESPONSE, response)

    async def on_status_update(self, connection_id: str, data: Any) -> None:
        try:
            update = StatusUpdate.model_validate(data)
        except PydanticValidationError as e:
            logger.warning("Dropping invalid statusUpdate from %s: %s", connection_id, e.errors()[0].get("msg"))
            return
        await self.state.status.propagate_status(
            update.message_id,
            update.status,
            update.target_identity,
            reporter_identity=self.state.registry.lookup_identity(connection_id),
        )

    async def on_typing(self, connection_id: str, data: Any) -> None:
        identity = _identity_from(data) or self.state.registry.lookup_identity(connection_id)
        if identity:
            await self.state.presence.broadcast_typing(identity, True, exclude=connection_id)

    async def on_stop_typing(self, connection_id: str, data: Any) -> None:
        identity = _identity_from(data) or self.state.registry.lookup_identity(connection_id)
        if identity:
            await self.state.presence.broadcast_typing(identity, False, exclude=connection_id)

    async def on_disconnect(self, connection_id: str) -> Optional[str]:
        """Returns the identity that went offline, or None when nothing changed."""
        identity = self.state.registry.remove(connection_id)
        if identity is None:
            return None
        if self.state.registry.is_online(identity):
            # A newer connection for the same identity is still live.
            return None
        logger.info("User %s disconnected (%s)", identity, connection_id)
        await self.state.presence.broadcast_presence(identity, PresenceKind.OFFLINE, exclude=connection_id)
        return identity
