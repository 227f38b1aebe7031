"""Token store adapter: push tokens cached in memory, persisted to the external store."""
import asyncio
import logging
from typing import Dict, Optional

from chat_relay.domain.common.cache import BoundedCache
from chat_relay.domain.common.errors import ExternalServiceError, NotFoundError
from chat_relay.domain.common.tasks import BackgroundTasks
from chat_relay.domain.common.types import LogicalClock, now_ms
from chat_relay.domain.relay.models import TokenRecord
from chat_relay.domain.relay.repositories import KeyValueStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class TokenStoreAdapter:
    """Push-token cache in front of a KeyValueStore.

    Memory is the record of truth for the running process: a failed persistence write is
    logged and the cached token stays. Saves are ordered by a logical version; a fetch that
    races with a save never overwrites the newer cached token.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cache: BoundedCache[str, TokenRecord],
        tasks: BackgroundTasks,
        store_timeout_seconds: float = 5.0,
        collection: str = USERS_COLLECTION,
        clock: Optional[LogicalClock] = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.tasks = tasks
        self.store_timeout_seconds = store_timeout_seconds
        self.collection = collection
        self._clock = clock or LogicalClock()
        self._inflight: Dict[str, asyncio.Future] = {}
        self._persist_locks: Dict[str, asyncio.Lock] = {}
        self._persist_users: Dict[str, int] = {}

    async def save(self, identity: Optional[str], token: Optional[str]) -> bool:
        """Cache the token, then persist it. Returns False only when identity or token is missing."""
        if not identity or not token:
            return False
        record = TokenRecord(token=token, version=self._clock.tick())
        self.cache.set(identity, record)
        await self._persist(identity, record)
        return True

    async def _persist(self, identity: str, record: TokenRecord) -> None:
        lock = self._persist_locks.setdefault(identity, asyncio.Lock())
        self._persist_users[identity] = self._persist_users.get(identity, 0) + 1
        try:
            async with lock:
                current = self.cache.peek(identity)
                if current is not None and current.version > record.version:
                    logger.debug("Token v%s for %s superseded before persisting", record.version, identity)
                    return
                fields = {
                    "pushToken": record.token,
                    "tokenVersion": record.version,
                    "tokenUpdatedAt": record.updated_at,
                }
                try:
                    await asyncio.wait_for(self._write(identity, fields), timeout=self.store_timeout_seconds)
                except asyncio.TimeoutError:
                    logger.warning("Token persist for %s timed out after %.1fs", identity, self.store_timeout_seconds)
                except ExternalServiceError as e:
                    logger.warning("Token persist for %s failed [%s]: %s", identity, e.code, e.message)
        finally:
            remaining = self._persist_users[identity] - 1
            if remaining:
                self._persist_users[identity] = remaining
            else:
                del self._persist_users[identity]
                self._persist_locks.pop(identity, None)

    async def _write(self, identity: str, fields: dict) -> None:
        try:
            await self.store.update(self.collection, identity, fields)
        except NotFoundError:
            await self.store.set(self.collection, identity, fields)

    async def load(self, identity: str) -> Optional[str]:
        """Cached token, or one store fetch on miss. Concurrent misses share the fetch."""
        record = self.cache.get(identity)
        if record is not None:
            return record.token
        pending = self._inflight.get(identity)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(identity))
            self._inflight[identity] = pending
            pending.add_done_callback(lambda _f: self._inflight.pop(identity, None))
        return await asyncio.shield(pending)

    async def _fetch(self, identity: str) -> Optional[str]:
        version_before = self._clock.value
        try:
            doc = await asyncio.wait_for(
                self.store.get(self.collection, identity), timeout=self.store_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("Token fetch for %s timed out after %.1fs", identity, self.store_timeout_seconds)
            return None
        except ExternalServiceError as e:
            logger.warning("Token fetch for %s failed [%s]: %s", identity, e.code, e.message)
            return None

        cached = self.cache.peek(identity)
        if cached is not None:
            # A save landed while the fetch was suspended; it is newer than anything stored.
            return cached.token
        token = (doc or {}).get("pushToken")
        if not token:
            return None
        self.cache.set(
            identity,
            TokenRecord(token=token, version=version_before, updated_at=(doc or {}).get("tokenUpdatedAt") or now_ms()),
        )
        return token

    def warm(self, identity: str) -> None:
        """Schedule a background load so the first push to this identity hits the cache."""
        if self.cache.peek(identity) is not None:
            return
        self.tasks.spawn(self.load(identity), name=f"token-warm:{identity}")
