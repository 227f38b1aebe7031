"""In-process key-value store (default backend; state is lost on restart)."""
import copy
from typing import Any, Dict, Optional

from chat_relay.domain.common.errors import NotFoundError


class InMemoryKeyValueStore:
    """Dict-backed KeyValueStore. Records are copied in and out so callers cannot mutate stored state."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, dict[str, Any]]] = {}

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        record = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    async def set(self, collection: str, key: str, value: dict[str, Any]) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(value)

    async def update(self, collection: str, key: str, fields: dict[str, Any]) -> None:
        record = self._collections.get(collection, {}).get(key)
        if record is None:
            raise NotFoundError(collection, key)
        record.update(copy.deepcopy(fields))

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass
