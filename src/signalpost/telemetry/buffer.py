# src/signalpost/telemetry/buffer.py
"""Bounded buffer for undelivered telemetry events.

Holds events in submission order between flushes. A flush drains the whole
buffer in one step; events whose delivery failed are requeued at the FRONT
so they go out first on the next attempt.

Key design decisions:
- Ring buffer via deque(maxlen=N): Automatic oldest-first eviction
- Correct eviction counting: Check was_full BEFORE append (deque evicts during)
- Requeue trims from the front: the oldest events are evicted first there too
- Aggregate logging: Log every 100 evictions to prevent Warning Fatigue
"""

from collections import deque
from collections.abc import Iterable

import structlog

from signalpost.contracts.events import Event

logger = structlog.get_logger(__name__)


class EventBuffer:
    """Ordered, bounded queue of events awaiting delivery.

    NOTE: Aggregate logging - logs every 100 evictions instead of per-event
    to avoid Warning Fatigue while a destination is down.

    Concurrency:
        NOT thread-safe. The Transport owns the buffer and only touches it
        from its event loop, never across an await.

    Attributes:
        evicted_count: Total number of events evicted due to overflow.

    Example:
        buffer = EventBuffer(max_size=1000)
        buffer.append(event)
        batch = buffer.drain()
        buffer.requeue(batch)  # delivery failed
    """

    _LOG_INTERVAL = 100

    def __init__(self, max_size: int = 1000) -> None:
        """Initialize the buffer.

        Args:
            max_size: Hard capacity. When full, the oldest event is evicted
                on append. Defaults to 1,000.

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        self._buffer: deque[Event] = deque(maxlen=max_size)
        self._evicted_count: int = 0
        self._last_logged_eviction_count: int = 0

    def append(self, event: Event) -> None:
        """Append an event, evicting the oldest one if the buffer is full."""
        was_full = len(self._buffer) == self._max_size
        self._buffer.append(event)
        if was_full:
            # deque auto-dropped the oldest item
            self._record_evictions(1)

    def drain(self) -> list[Event]:
        """Remove and return every buffered event, oldest first.

        The buffer is empty when this returns; events submitted afterwards
        are not part of the returned snapshot.
        """
        snapshot = list(self._buffer)
        self._buffer.clear()
        return snapshot

    def requeue(self, events: Iterable[Event]) -> None:
        """Put undelivered events back at the front of the buffer.

        ``events`` keep their relative order and are placed ahead of every
        event currently buffered. If the result exceeds capacity, the oldest
        events (the front) are evicted.
        """
        combined = [*events, *self._buffer]
        overflow = max(0, len(combined) - self._max_size)
        self._buffer = deque(combined[overflow:], maxlen=self._max_size)
        if overflow:
            self._record_evictions(overflow)

    def snapshot(self) -> tuple[Event, ...]:
        """Copy of the buffered events, oldest first. Does not modify the buffer."""
        return tuple(self._buffer)

    def _record_evictions(self, count: int) -> None:
        self._evicted_count += count
        if self._evicted_count - self._last_logged_eviction_count >= self._LOG_INTERVAL:
            logger.warning(
                "Telemetry buffer overflow - events evicted",
                evicted_since_last_log=self._evicted_count - self._last_logged_eviction_count,
                evicted_total=self._evicted_count,
                buffer_size=self._max_size,
                hint="A destination may be unreachable; consider raising max_queue_size",
            )
            self._last_logged_eviction_count = self._evicted_count

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def evicted_count(self) -> int:
        """Number of events evicted due to overflow."""
        return self._evicted_count

    def __len__(self) -> int:
        return len(self._buffer)
