"""Relay domain models."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_relay.domain.common.types import generate_id, now_ms


class MessageStatus(str, Enum):
    """Lifecycle status of a relayed message."""

    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"


# Forward-only ordering for status bookkeeping; FAILED is reachable only from SENT.
_STATUS_RANK = {
    MessageStatus.SENT: 0,
    MessageStatus.DELIVERED: 1,
    MessageStatus.READ: 2,
}


def can_advance(current: MessageStatus, new: MessageStatus) -> bool:
    """True if a message in `current` may move to `new`."""
    if new == MessageStatus.FAILED:
        return current == MessageStatus.SENT
    if current == MessageStatus.FAILED:
        return False
    return _STATUS_RANK[new] > _STATUS_RANK[current]


class PresenceKind(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class PushOutcome(str, Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


class WireModel(BaseModel):
    """Base for models exchanged with clients: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class MessagePayload(WireModel):
    """Inbound `message` event. Every field is optional here; the relay validates."""

    id: Optional[str] = None
    content: Optional[str] = None
    sender_identity: Optional[str] = None
    recipient_identity: Optional[str] = None
    sender_display_name: Optional[str] = None
    timestamp: Optional[int] = None


class Message(WireModel):
    """A relayed chat message. Only `status` changes after creation."""

    id: str
    content: str
    sender_identity: str
    recipient_identity: Optional[str] = None
    sender_display_name: Optional[str] = None
    timestamp: int
    status: MessageStatus = MessageStatus.SENT

    @classmethod
    def create(
        cls,
        content: str,
        sender_identity: str,
        recipient_identity: Optional[str] = None,
        sender_display_name: Optional[str] = None,
        id: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> "Message":
        """Create a message, generating id and timestamp when the caller did not supply them."""
        return cls(
            id=id or generate_id(),
            content=content,
            sender_identity=sender_identity,
            recipient_identity=recipient_identity,
            sender_display_name=sender_display_name,
            timestamp=timestamp if timestamp is not None else now_ms(),
        )

    @property
    def is_broadcast(self) -> bool:
        return not self.recipient_identity


class MessageAck(WireModel):
    """`messageResponse` sent back to the sender."""

    message_id: Optional[str] = None
    success: bool
    status: Optional[MessageStatus] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message_id: str, status: MessageStatus) -> "MessageAck":
        return cls(message_id=message_id, success=True, status=status)

    @classmethod
    def failure(cls, message_id: Optional[str], error: str) -> "MessageAck":
        return cls(message_id=message_id, success=False, error=error)


class PushTokenRegistration(WireModel):
    identity: Optional[str] = None
    token: Optional[str] = None


class StatusUpdate(WireModel):
    """Inbound `statusUpdate` event: tell `target_identity` that a message changed status."""

    message_id: str
    status: MessageStatus
    target_identity: str


class PushResult(BaseModel):
    """Outcome of one push attempt. `error_code` keeps the provider's classification."""

    outcome: PushOutcome
    identity: str
    token: Optional[str] = None
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


class RegistryEntry(BaseModel):
    """One live connection/identity pairing; `seq` orders registrations."""

    connection_id: str
    identity: str
    seq: int


class TokenRecord(BaseModel):
    """Cached push token; `version` orders saves within the process."""

    token: str
    version: int
    updated_at: int = Field(default_factory=now_ms)
