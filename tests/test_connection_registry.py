"""Connection registry tests."""
import random

from chat_relay.domain.relay.registry import ConnectionRegistry


def _assert_mutual_inverse(registry: ConnectionRegistry) -> None:
    for identity in registry.list_online_identities():
        conn = registry.lookup_connection(identity)
        assert conn is not None
        assert registry.lookup_identity(conn) == identity
    for conn in registry.connection_ids():
        identity = registry.lookup_identity(conn)
        assert registry.lookup_connection(identity) == conn


def test_register_and_lookup_both_directions():
    registry = ConnectionRegistry()
    entry = registry.register("c1", "U1")

    assert entry.connection_id == "c1" and entry.identity == "U1"
    assert registry.lookup_identity("c1") == "U1"
    assert registry.lookup_connection("U1") == "c1"
    assert registry.list_online_identities() == {"U1"}


def test_absent_lookups_return_none():
    registry = ConnectionRegistry()
    assert registry.lookup_identity("nope") is None
    assert registry.lookup_connection("nobody") is None
    assert registry.remove("nope") is None


def test_reconnect_supersedes_old_connection():
    registry = ConnectionRegistry()
    registry.register("c1", "U1")
    registry.register("c2", "U1")

    assert registry.lookup_connection("U1") == "c2"
    assert registry.lookup_identity("c1") is None
    _assert_mutual_inverse(registry)


def test_late_disconnect_of_old_connection_keeps_new_mapping():
    # Regression: U1 reconnects as c2 before c1's disconnect arrives.
    registry = ConnectionRegistry()
    registry.register("c1", "U1")
    registry.register("c2", "U1")

    assert registry.remove("c1") is None
    assert registry.lookup_connection("U1") == "c2"
    assert registry.is_online("U1")


def test_remove_returns_identity_and_clears_both_directions():
    registry = ConnectionRegistry()
    registry.register("c1", "U1")

    assert registry.remove("c1") == "U1"
    assert registry.lookup_connection("U1") is None
    assert registry.list_online_identities() == set()


def test_connection_rejoining_as_other_identity_drops_old_identity():
    registry = ConnectionRegistry()
    registry.register("c1", "U1")
    registry.register("c1", "U2")

    assert registry.lookup_identity("c1") == "U2"
    assert registry.lookup_connection("U1") is None
    assert registry.list_online_identities() == {"U2"}


def test_registration_sequence_is_monotonic():
    registry = ConnectionRegistry()
    first = registry.register("c1", "U1")
    second = registry.register("c2", "U1")
    assert second.seq > first.seq


def test_random_register_remove_sequences_keep_maps_inverse():
    rng = random.Random(1234)
    registry = ConnectionRegistry()
    connections = [f"c{i}" for i in range(8)]
    identities = [f"U{i}" for i in range(5)]
    for _ in range(2000):
        if rng.random() < 0.6:
            registry.register(rng.choice(connections), rng.choice(identities))
        else:
            registry.remove(rng.choice(connections))
        _assert_mutual_inverse(registry)
