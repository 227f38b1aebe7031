"""End-to-end tests over the /ws endpoint and the admin routes (TestClient, in-memory store, fake push)."""
import json
import time

import pytest
from fastapi.testclient import TestClient

from chat_relay.infra.store.memory_store import InMemoryKeyValueStore
from chat_relay.main import create_app
from chat_relay.services.relay_state import RelayState


@pytest.fixture
def client(push_provider):
    def factory(s, hub):
        return RelayState(transport=hub, store=InMemoryKeyValueStore(), push_provider=push_provider)

    with TestClient(create_app(factory)) as c:
        yield c


def _send(ws, event, data):
    ws.send_text(json.dumps({"event": event, "data": data}))


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_ping_is_answered_with_pong(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_malformed_frame_gets_error_event(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"event": "error", "data": {"error": "malformed frame"}}
        ws.send_text(json.dumps({"data": {}}))
        assert ws.receive_json()["event"] == "error"


def test_two_clients_exchange_message_and_presence(client):
    with client.websocket_connect("/ws") as alice:
        _send(alice, "join", "U1")
        assert alice.receive_json() == {"event": "onlineUsers", "data": ["U1"]}

        with client.websocket_connect("/ws") as bob:
            _send(bob, "join", "U2")
            assert bob.receive_json() == {"event": "onlineUsers", "data": ["U1", "U2"]}
            assert alice.receive_json() == {"event": "userOnline", "data": {"identity": "U2", "kind": "online"}}

            _send(alice, "message", {"id": "m1", "content": "hi", "senderIdentity": "U1", "recipientIdentity": "U2"})
            incoming = bob.receive_json()
            assert incoming["event"] == "message"
            assert incoming["data"]["content"] == "hi"
            assert alice.receive_json() == {
                "event": "messageResponse",
                "data": {"messageId": "m1", "success": True, "status": "DELIVERED"},
            }

            _send(bob, "statusUpdate", {"messageId": "m1", "status": "READ", "targetIdentity": "U1"})
            assert alice.receive_json() == {
                "event": "messageStatus",
                "data": {"messageId": "m1", "status": "READ", "reporterIdentity": "U2"},
            }

        assert alice.receive_json() == {"event": "userOffline", "data": {"identity": "U2", "kind": "offline"}}


def test_offline_recipient_is_pushed(client, push_provider):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "join", "U1")
        ws.receive_json()  # onlineUsers

        _send(ws, "registerPushToken", {"identity": "U2", "token": "T2"})
        assert ws.receive_json() == {"event": "pushTokenResponse", "data": {"success": True}}

        _send(ws, "message", {"content": "are you there?", "senderIdentity": "U1", "recipientIdentity": "U2"})
        response = ws.receive_json()
        assert response["event"] == "messageResponse"
        assert response["data"]["status"] == "SENT"

    assert _wait_for(lambda: len(push_provider.calls) == 1)
    assert push_provider.calls[0]["token"] == "T2"
    assert push_provider.calls[0]["body"] == "are you there?"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready_with_memory_store(client):
    response = client.get("/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["ready"] is True
    assert body["checks"]["store"] == "ok"


def test_diagnostics_lists_online_users_and_recent_messages(client):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "join", "U1")
        ws.receive_json()
        _send(ws, "message", {"id": "m1", "content": "hello", "senderIdentity": "U1", "recipientIdentity": "U9"})
        ws.receive_json()

        body = client.get("/diagnostics", params={"recent": 5}).json()

    assert body["onlineUsers"] == ["U1"]
    assert body["cachedMessages"] == 1
    assert body["recentMessages"][0]["id"] == "m1"
    assert body["recentMessages"][0]["status"] == "SENT"
