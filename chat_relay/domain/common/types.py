"""Common domain types."""
import time
from uuid import uuid4


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class LogicalClock:
    """Monotonic counter used to order last-write-wins updates (registrations, token saves)."""

    def __init__(self, start: int = 0) -> None:
        self._value = start

    def tick(self) -> int:
        self._value += 1
        return self._value

    @property
    def value(self) -> int:
        return self._value
