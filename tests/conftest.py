"""Pytest configuration and shared fakes for relay tests."""
import asyncio
from typing import Any, Iterable, Optional

import pytest

from chat_relay.domain.common.errors import PushProviderError, StoreError
from chat_relay.infra.store.memory_store import InMemoryKeyValueStore
from chat_relay.services.event_router import RelayEventRouter
from chat_relay.services.relay_state import RelayState


class FakeTransport:
    """EventTransport that records every event instead of writing to a socket."""

    def __init__(self) -> None:
        self.open: list[str] = []
        self.dead: set[str] = set()
        self.sent: list[tuple[str, str, Any]] = []

    def add(self, *connection_ids: str) -> None:
        for cid in connection_ids:
            if cid not in self.open:
                self.open.append(cid)

    def close(self, connection_id: str) -> None:
        if connection_id in self.open:
            self.open.remove(connection_id)

    def connection_ids(self) -> list[str]:
        return list(self.open)

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        if connection_id not in self.open or connection_id in self.dead:
            return False
        self.sent.append((connection_id, event, data))
        return True

    async def broadcast(self, event: str, data: Any, exclude: Iterable[str] = ()) -> int:
        skip = set(exclude)
        count = 0
        for cid in self.connection_ids():
            if cid not in skip and await self.send(cid, event, data):
                count += 1
        return count

    def events_for(self, connection_id: str, event: Optional[str] = None) -> list[Any]:
        return [
            data for cid, ev, data in self.sent
            if cid == connection_id and (event is None or ev == event)
        ]


class FakePushProvider:
    """PushProvider that records calls. Set `error` to fail, `hang` to never resolve."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error: Optional[PushProviderError] = None
        self.hang = False
        self.configured = True

    async def send(self, token: str, title: str, body: str, data: dict[str, str]) -> str:
        self.calls.append({"token": token, "title": title, "body": body, "data": data})
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return f"projects/test/messages/{len(self.calls)}"


class ControllableStore(InMemoryKeyValueStore):
    """In-memory store with call counters, injectable failures and an optional write delay."""

    def __init__(self) -> None:
        super().__init__()
        self.get_calls = 0
        self.write_calls = 0
        self.fail_reads = False
        self.fail_writes = False
        self.read_gate: Optional[asyncio.Event] = None
        self.write_delays: list[float] = []

    async def get(self, collection, key):
        self.get_calls += 1
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.fail_reads:
            raise StoreError("store unavailable", code="UNAVAILABLE")
        return await super().get(collection, key)

    async def _delay_write(self) -> None:
        self.write_calls += 1
        if self.write_delays:
            await asyncio.sleep(self.write_delays.pop(0))
        if self.fail_writes:
            raise StoreError("write rejected", code="PERMISSION_DENIED")

    async def set(self, collection, key, value):
        await self._delay_write()
        await super().set(collection, key, value)

    async def update(self, collection, key, fields):
        await self._delay_write()
        await super().update(collection, key, fields)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def push_provider() -> FakePushProvider:
    return FakePushProvider()


@pytest.fixture
def store() -> ControllableStore:
    return ControllableStore()


@pytest.fixture
def state(transport, store, push_provider) -> RelayState:
    return RelayState(
        transport=transport,
        store=store,
        push_provider=push_provider,
        message_cache_max_entries=100,
        token_cache_max_entries=100,
        store_timeout_seconds=1.0,
        push_timeout_seconds=0.2,
    )


@pytest.fixture
def event_router(state) -> RelayEventRouter:
    return RelayEventRouter(state)
