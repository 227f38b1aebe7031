"""Connection registry: connection id <-> identity directory."""
import logging
from typing import Dict, Optional

from chat_relay.domain.common.types import LogicalClock
from chat_relay.domain.relay.models import RegistryEntry

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Bidirectional map between live connections and identities.

    Both directions are inserted and removed together so that they stay mutual inverses.
    Re-registering an identity under a new connection supersedes the old pairing; the old
    socket is left open and cleans itself up through its own disconnect.
    """

    def __init__(self, clock: Optional[LogicalClock] = None) -> None:
        self._clock = clock or LogicalClock()
        # connection_id -> entry
        self._by_connection: Dict[str, RegistryEntry] = {}
        # identity -> entry
        self._by_identity: Dict[str, RegistryEntry] = {}

    def register(self, connection_id: str, identity: str) -> RegistryEntry:
        entry = RegistryEntry(connection_id=connection_id, identity=identity, seq=self._clock.tick())

        previous = self._by_identity.get(identity)
        if previous is not None and previous.connection_id != connection_id:
            # Superseded: the old connection no longer speaks for this identity.
            self._by_connection.pop(previous.connection_id, None)
            logger.info(
                "Identity %s re-registered on %s (superseding %s)",
                identity, connection_id, previous.connection_id,
            )

        stale = self._by_connection.get(connection_id)
        if stale is not None and stale.identity != identity:
            reverse = self._by_identity.get(stale.identity)
            if reverse is not None and reverse.connection_id == connection_id:
                del self._by_identity[stale.identity]

        self._by_connection[connection_id] = entry
        self._by_identity[identity] = entry
        return entry

    def lookup_identity(self, connection_id: str) -> Optional[str]:
        entry = self._by_connection.get(connection_id)
        return entry.identity if entry else None

    def lookup_connection(self, identity: str) -> Optional[str]:
        entry = self._by_identity.get(identity)
        return entry.connection_id if entry else None

    def remove(self, connection_id: str) -> Optional[str]:
        """Forget a connection. Returns the identity it was registered under, if any.

        The reverse entry is only deleted while it still points at this connection, so a late
        disconnect of a superseded connection never removes the identity's newer mapping.
        """
        entry = self._by_connection.pop(connection_id, None)
        if entry is None:
            return None
        reverse = self._by_identity.get(entry.identity)
        if reverse is not None and reverse.connection_id == connection_id:
            del self._by_identity[entry.identity]
        return entry.identity

    def is_online(self, identity: str) -> bool:
        return identity in self._by_identity

    def list_online_identities(self) -> set[str]:
        return set(self._by_identity)

    def connection_ids(self) -> list[str]:
        return list(self._by_connection)

    def __len__(self) -> int:
        return len(self._by_connection)
