"""Relay domain collaborator protocols."""
from typing import Any, Iterable, Optional, Protocol


class KeyValueStore(Protocol):
    """Persistent store for user records (push tokens). Implementations raise StoreError on I/O failure."""

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Return the record or None when absent."""
        ...

    async def set(self, collection: str, key: str, value: dict[str, Any]) -> None:
        """Create or replace the record."""
        ...

    async def update(self, collection: str, key: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing record. Raises NotFoundError when absent."""
        ...

    async def ping(self) -> bool:
        """Connectivity check for readiness."""
        ...

    async def close(self) -> None:
        ...


class PushProvider(Protocol):
    """Deliver-or-fail push service. Raises PushProviderError with the provider's code."""

    async def send(self, token: str, title: str, body: str, data: dict[str, str]) -> str:
        """Send one notification; returns the provider's message id."""
        ...


class EventTransport(Protocol):
    """Bidirectional event channel keyed by connection id."""

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        """Send one event. Returns False when the connection is gone or the send failed."""
        ...

    async def broadcast(self, event: str, data: Any, exclude: Iterable[str] = ()) -> int:
        """Send to every open connection not in `exclude`. Returns how many sends succeeded."""
        ...

    def connection_ids(self) -> list[str]:
        ...
