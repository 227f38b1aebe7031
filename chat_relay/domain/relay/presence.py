"""Status propagation and presence/typing broadcasts."""
import logging
from typing import Optional

from chat_relay.domain.common.cache import BoundedCache
from chat_relay.domain.relay.models import Message, MessageStatus, PresenceKind, can_advance
from chat_relay.domain.relay.registry import ConnectionRegistry
from chat_relay.domain.relay.repositories import EventTransport

logger = logging.getLogger(__name__)

EVENT_MESSAGE_STATUS = "messageStatus"
EVENT_USER_ONLINE = "userOnline"
EVENT_USER_OFFLINE = "userOffline"
EVENT_ONLINE_USERS = "onlineUsers"
EVENT_USER_TYPING = "userTyping"
EVENT_USER_STOPPED_TYPING = "userStoppedTyping"


class StatusPropagator:
    """Forwards status updates to the identity that should hear about them. Best-effort: no retry, no queue."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: EventTransport,
        messages: BoundedCache[str, Message],
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.messages = messages

    async def propagate_status(
        self,
        message_id: str,
        status: MessageStatus,
        target_identity: str,
        reporter_identity: Optional[str] = None,
    ) -> bool:
        """Returns True when the update reached the target's connection."""
        message = self.messages.peek(message_id)
        if message is not None and can_advance(message.status, status):
            message.status = status

        connection_id = self.registry.lookup_connection(target_identity)
        if connection_id is None:
            logger.debug("Status %s for %s dropped: %s is offline", status.value, message_id, target_identity)
            return False
        payload = {"messageId": message_id, "status": status.value}
        if reporter_identity:
            payload["reporterIdentity"] = reporter_identity
        sent = await self.transport.send(connection_id, EVENT_MESSAGE_STATUS, payload)
        if sent:
            logger.info("Message %s status %s forwarded to %s", message_id, status.value, target_identity)
        return sent


class PresenceBroadcaster:
    """Join/leave and typing fan-out to every connection except the subject's own."""

    def __init__(self, registry: ConnectionRegistry, transport: EventTransport) -> None:
        self.registry = registry
        self.transport = transport

    async def broadcast_presence(
        self, identity: str, kind: PresenceKind, exclude: Optional[str] = None
    ) -> int:
        event = EVENT_USER_ONLINE if kind == PresenceKind.ONLINE else EVENT_USER_OFFLINE
        excluded = {c for c in (exclude, self.registry.lookup_connection(identity)) if c}
        count = await self.transport.broadcast(event, {"identity": identity, "kind": kind.value}, exclude=excluded)
        logger.info("Presence %s for %s sent to %d connection(s)", kind.value, identity, count)
        return count

    async def send_online_snapshot(self, connection_id: str) -> list[str]:
        """Point-in-time list of online identities; may be stale by the time it arrives."""
        online = sorted(self.registry.list_online_identities())
        await self.transport.send(connection_id, EVENT_ONLINE_USERS, online)
        return online

    async def broadcast_typing(self, identity: str, typing: bool, exclude: Optional[str] = None) -> int:
        event = EVENT_USER_TYPING if typing else EVENT_USER_STOPPED_TYPING
        return await self.transport.broadcast(event, identity, exclude=[exclude] if exclude else [])
