"""Redis-backed key-value store."""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from chat_relay.domain.common.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Stores each record as a JSON string under `<prefix>:<collection>:<key>`."""

    def __init__(self, redis_url: str, key_prefix: str = "chat_relay", client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self._redis: Optional[redis.Redis] = client

    async def connect(self):
        """Connect to Redis."""
        self._redis = redis.from_url(self.redis_url, decode_responses=True)

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, collection: str, key: str) -> str:
        return f"{self.key_prefix}:{collection}:{key}"

    async def _client(self) -> redis.Redis:
        if not self._redis:
            await self.connect()
        return self._redis

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        client = await self._client()
        try:
            raw = await client.get(self._key(collection, key))
        except RedisError as e:
            raise StoreError(f"redis get failed: {e}", code=type(e).__name__)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"corrupt record {collection}/{key}: {e}", code="corrupt-record")

    async def set(self, collection: str, key: str, value: dict[str, Any]) -> None:
        client = await self._client()
        try:
            await client.set(self._key(collection, key), json.dumps(value))
        except RedisError as e:
            raise StoreError(f"redis set failed: {e}", code=type(e).__name__)

    async def update(self, collection: str, key: str, fields: dict[str, Any]) -> None:
        # Read-merge-write; safe within the single relay process.
        existing = await self.get(collection, key)
        if existing is None:
            raise NotFoundError(collection, key)
        existing.update(fields)
        await self.set(collection, key, existing)

    async def ping(self) -> bool:
        client = await self._client()
        try:
            return bool(await client.ping())
        except RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False
