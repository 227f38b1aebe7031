"""Process-scoped relay state: owns the registry, caches, adapters and background tasks."""
import logging
from typing import Any, Optional

from chat_relay.domain.common.cache import BoundedCache
from chat_relay.domain.common.tasks import BackgroundTasks
from chat_relay.domain.common.types import LogicalClock
from chat_relay.domain.relay.models import Message, TokenRecord
from chat_relay.domain.relay.presence import PresenceBroadcaster, StatusPropagator
from chat_relay.domain.relay.push import PushDispatcher
from chat_relay.domain.relay.registry import ConnectionRegistry
from chat_relay.domain.relay.relay_service import MessageRelay
from chat_relay.domain.relay.repositories import EventTransport, KeyValueStore, PushProvider
from chat_relay.domain.relay.tokens import TokenStoreAdapter

logger = logging.getLogger(__name__)


class RelayState:
    """Everything mutable the relay holds for the lifetime of one process.

    Built once at startup (see `build`) and torn down with `aclose`, which cancels pending
    background work and closes the store.
    """

    def __init__(
        self,
        *,
        transport: EventTransport,
        store: KeyValueStore,
        push_provider: PushProvider,
        message_cache_max_entries: int = 10_000,
        token_cache_max_entries: int = 10_000,
        token_cache_ttl_seconds: float = 0.0,
        store_timeout_seconds: float = 5.0,
        push_timeout_seconds: float = 10.0,
        require_recipient: bool = False,
        users_collection: str = "users",
    ) -> None:
        self.transport = transport
        self.store = store
        self.push_provider = push_provider
        self.clock = LogicalClock()
        self.tasks = BackgroundTasks()

        self.registry = ConnectionRegistry(clock=self.clock)
        self.messages: BoundedCache[str, Message] = BoundedCache(message_cache_max_entries)
        self.token_cache: BoundedCache[str, TokenRecord] = BoundedCache(
            token_cache_max_entries, ttl_seconds=token_cache_ttl_seconds
        )
        self.tokens = TokenStoreAdapter(
            store,
            self.token_cache,
            self.tasks,
            store_timeout_seconds=store_timeout_seconds,
            collection=users_collection,
            clock=self.clock,
        )
        self.dispatcher = PushDispatcher(self.tokens, push_provider, timeout_seconds=push_timeout_seconds)
        self.relay = MessageRelay(
            self.registry,
            transport,
            self.dispatcher,
            self.messages,
            self.tasks,
            require_recipient=require_recipient,
        )
        self.status = StatusPropagator(self.registry, transport, self.messages)
        self.presence = PresenceBroadcaster(self.registry, transport)

    @classmethod
    def build(
        cls,
        settings: Any,
        transport: EventTransport,
        store: Optional[KeyValueStore] = None,
        push_provider: Optional[PushProvider] = None,
    ) -> "RelayState":
        """Wire the relay from settings; store and provider default to the configured backends."""
        if store is None:
            from chat_relay.infra.store import build_store
            store = build_store(settings)
        if push_provider is None:
            from chat_relay.infra.push.sender import FirebasePushProvider
            push_provider = FirebasePushProvider(
                settings.push_enabled, settings.google_application_credentials
            )
        return cls(
            transport=transport,
            store=store,
            push_provider=push_provider,
            message_cache_max_entries=settings.message_cache_max_entries,
            token_cache_max_entries=settings.token_cache_max_entries,
            token_cache_ttl_seconds=settings.token_cache_ttl_seconds,
            store_timeout_seconds=settings.store_timeout_seconds,
            push_timeout_seconds=settings.push_timeout_seconds,
            require_recipient=settings.require_recipient,
            users_collection=settings.users_collection,
        )

    def snapshot(self, recent: int = 20) -> dict[str, Any]:
        """Diagnostic view of current connections, users and recent messages."""
        recent_messages = list(self.messages.values())[-recent:] if recent > 0 else []
        return {
            "connections": len(self.transport.connection_ids()),
            "registeredConnections": len(self.registry),
            "onlineUsers": sorted(self.registry.list_online_identities()),
            "cachedMessages": len(self.messages),
            "cachedTokens": len(self.token_cache),
            "recentMessages": [m.to_wire() for m in reversed(recent_messages)],
            "pendingBackgroundTasks": self.tasks.pending,
        }

    async def aclose(self) -> None:
        await self.tasks.cancel_all()
        try:
            await self.store.close()
        except Exception as e:
            logger.warning("Store close failed: %s", e)
        self.messages.clear()
        self.token_cache.clear()
