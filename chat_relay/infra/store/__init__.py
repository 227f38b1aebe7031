"""Persistent store backends for push tokens / user records."""
from chat_relay.domain.relay.repositories import KeyValueStore
from chat_relay.infra.store.memory_store import InMemoryKeyValueStore


def build_store(settings) -> KeyValueStore:
    """Pick the store backend named by settings.store_backend."""
    backend = settings.store_backend
    if backend == "redis":
        from chat_relay.infra.store.redis_store import RedisKeyValueStore
        return RedisKeyValueStore(settings.redis_url, key_prefix=settings.redis_key_prefix)
    if backend == "sql":
        from chat_relay.infra.store.sql_store import SqlKeyValueStore
        return SqlKeyValueStore.from_url(settings.database_url, echo=settings.database_echo)
    return InMemoryKeyValueStore()
