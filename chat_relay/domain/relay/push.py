"""Push dispatcher: resolve a token and send one notification through the provider."""
import asyncio
import logging
from typing import Any, Optional

from chat_relay.domain.common.errors import PushProviderError
from chat_relay.domain.relay.models import PushOutcome, PushResult
from chat_relay.domain.relay.repositories import PushProvider
from chat_relay.domain.relay.tokens import TokenStoreAdapter

logger = logging.getLogger(__name__)

CHAT_MESSAGE_TYPE = "chat_message"


def build_message_data(message_id: str, sender_identity: str, timestamp: int) -> dict[str, Any]:
    """Data payload the client uses to open the right conversation without refetching the message."""
    return {
        "messageId": message_id,
        "senderIdentity": sender_identity,
        "type": CHAT_MESSAGE_TYPE,
        "timestamp": timestamp,
    }


class PushDispatcher:
    """Sends at most one provider call per notify(); failures become a `failed` result, never an exception."""

    def __init__(
        self,
        tokens: TokenStoreAdapter,
        provider: PushProvider,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.tokens = tokens
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    async def notify(
        self,
        identity: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> PushResult:
        token = await self.tokens.load(identity)
        if not token:
            logger.info("[PUSH] No push token for %s; skipping", identity)
            return PushResult(outcome=PushOutcome.SKIPPED, identity=identity)

        # FCM data payload: all values must be strings
        data_str = {k: str(v) for k, v in (data or {}).items()}
        try:
            provider_id = await asyncio.wait_for(
                self.provider.send(token, title, body, data_str), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("[PUSH] Provider timed out after %.1fs for %s", self.timeout_seconds, identity)
            return PushResult(
                outcome=PushOutcome.FAILED, identity=identity, token=token,
                error_code="timeout", error="push provider timed out",
            )
        except PushProviderError as e:
            logger.warning("[PUSH] Send failed for %s token %s... [%s]: %s", identity, token[:20], e.code, e.message)
            return PushResult(
                outcome=PushOutcome.FAILED, identity=identity, token=token,
                error_code=e.code, error=e.message,
            )
        logger.info("[PUSH] Sent to %s token %s...", identity, token[:20])
        return PushResult(
            outcome=PushOutcome.DELIVERED, identity=identity, token=token, provider_message_id=provider_id,
        )
