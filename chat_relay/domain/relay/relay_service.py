"""Message relay: direct delivery to online recipients, push fallback for offline ones."""
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from chat_relay.domain.common.cache import BoundedCache
from chat_relay.domain.common.errors import ValidationError
from chat_relay.domain.common.tasks import BackgroundTasks
from chat_relay.domain.relay.models import (
    Message,
    MessageAck,
    MessagePayload,
    MessageStatus,
    PushResult,
)
from chat_relay.domain.relay.push import PushDispatcher, build_message_data
from chat_relay.domain.relay.registry import ConnectionRegistry
from chat_relay.domain.relay.repositories import EventTransport

logger = logging.getLogger(__name__)

EVENT_MESSAGE = "message"


class MessageRelay:
    """Ingests message events and returns the sender's acknowledgment.

    The push path is fire-and-forget: it runs as a background task after the SENT ack is
    decided, and nothing it does (success, skip, failure) flows back into the ack or into
    the cached message status.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: EventTransport,
        dispatcher: PushDispatcher,
        messages: BoundedCache[str, Message],
        tasks: BackgroundTasks,
        require_recipient: bool = False,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.dispatcher = dispatcher
        self.messages = messages
        self.tasks = tasks
        self.require_recipient = require_recipient

    def _build_message(self, raw: Any, connection_id: Optional[str]) -> Message:
        try:
            payload = raw if isinstance(raw, MessagePayload) else MessagePayload.model_validate(raw or {})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid message payload: {e.errors()[0].get('msg', 'bad field')}")

        sender = payload.sender_identity
        if not sender and connection_id:
            sender = self.registry.lookup_identity(connection_id)
        if not sender:
            raise ValidationError("senderIdentity is required")
        if payload.content is None:
            raise ValidationError("content is required")
        if self.require_recipient and not payload.recipient_identity:
            raise ValidationError("recipientIdentity is required")

        return Message.create(
            content=payload.content,
            sender_identity=sender,
            recipient_identity=payload.recipient_identity or None,
            sender_display_name=payload.sender_display_name,
            id=payload.id,
            timestamp=payload.timestamp,
        )

    async def ingest(self, raw: Any, connection_id: Optional[str] = None) -> MessageAck:
        try:
            message = self._build_message(raw, connection_id)
        except ValidationError as e:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(raw_id, str):
                raw_id = None
            logger.warning("[RELAY] Rejected message from %s: %s", connection_id, e.message)
            return MessageAck.failure(raw_id, e.message)

        # Same id overwrites the cached entry in place.
        self.messages.set(message.id, message)

        if message.is_broadcast:
            return await self._broadcast(message, connection_id)
        return await self._deliver(message)

    async def _deliver(self, message: Message) -> MessageAck:
        recipient = message.recipient_identity
        connection_id = self.registry.lookup_connection(recipient)
        if connection_id is not None:
            if await self.transport.send(connection_id, EVENT_MESSAGE, message.to_wire()):
                message.status = MessageStatus.DELIVERED
                logger.info("[RELAY] Message %s delivered to %s", message.id, recipient)
                return MessageAck.ok(message.id, MessageStatus.DELIVERED)
            logger.warning("[RELAY] Forward of %s to %s failed; falling back to push", message.id, recipient)

        self.tasks.spawn(self._push_fallback(message), name=f"push:{message.id}")
        return MessageAck.ok(message.id, MessageStatus.SENT)

    async def _push_fallback(self, message: Message) -> PushResult:
        title = message.sender_display_name or message.sender_identity
        result = await self.dispatcher.notify(
            message.recipient_identity,
            title,
            message.content,
            build_message_data(message.id, message.sender_identity, message.timestamp),
        )
        logger.info(
            "[RELAY] Push fallback for %s -> %s: %s%s",
            message.id, message.recipient_identity, result.outcome.value,
            f" [{result.error_code}]" if result.error_code else "",
        )
        return result

    async def _broadcast(self, message: Message, connection_id: Optional[str]) -> MessageAck:
        wire = message.to_wire()
        reached = 0
        for target in self.registry.connection_ids():
            if await self.transport.send(target, EVENT_MESSAGE, wire) and target != connection_id:
                reached += 1
        if reached:
            message.status = MessageStatus.DELIVERED
        logger.info("[RELAY] Broadcast %s reached %d other connection(s)", message.id, reached)
        return MessageAck.ok(message.id, message.status)
