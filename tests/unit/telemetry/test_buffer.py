# tests/unit/telemetry/test_buffer.py
"""Unit tests for EventBuffer.

Tests cover:
- Append / drain ordering
- Requeue at the front, preserving relative order
- Eviction counting on append and on requeue overflow
- Aggregate logging every 100 evictions (Warning Fatigue prevention)
"""

from collections.abc import Callable
from unittest.mock import patch

import pytest

from signalpost.contracts.events import Event
from signalpost.telemetry.buffer import EventBuffer

MakeEvent = Callable[..., Event]

# =============================================================================
# Basic Behavior Tests
# =============================================================================


class TestEventBufferBasics:
    def test_empty_buffer_length(self) -> None:
        assert len(EventBuffer(max_size=10)) == 0

    def test_invalid_max_size(self) -> None:
        with pytest.raises(ValueError, match="max_size must be >= 1"):
            EventBuffer(max_size=0)

    def test_drain_returns_submission_order_and_empties(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=10)
        events = [make_event() for _ in range(5)]
        for event in events:
            buffer.append(event)

        assert buffer.drain() == events
        assert len(buffer) == 0
        assert buffer.drain() == []

    def test_snapshot_does_not_modify(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=10)
        event = make_event()
        buffer.append(event)
        assert buffer.snapshot() == (event,)
        assert len(buffer) == 1


class TestEventBufferRequeue:
    def test_requeued_events_go_first(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=10)
        failed = [make_event() for _ in range(3)]
        newer = [make_event() for _ in range(2)]
        for event in newer:
            buffer.append(event)

        buffer.requeue(failed)

        assert buffer.drain() == failed + newer

    def test_requeue_overflow_evicts_oldest(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=4)
        failed = [make_event() for _ in range(3)]
        newer = [make_event() for _ in range(3)]
        for event in newer:
            buffer.append(event)

        buffer.requeue(failed)

        assert buffer.drain() == failed[2:] + newer
        assert buffer.evicted_count == 2

    def test_requeue_empty_is_noop(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=4)
        event = make_event()
        buffer.append(event)
        buffer.requeue([])
        assert buffer.snapshot() == (event,)
        assert buffer.evicted_count == 0


class TestEventBufferOverflow:
    def test_append_when_full_evicts_oldest(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=3)
        events = [make_event() for _ in range(4)]
        for event in events:
            buffer.append(event)

        assert buffer.snapshot() == tuple(events[1:])
        assert buffer.evicted_count == 1

    def test_no_eviction_counted_while_filling(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=3)
        for _ in range(3):
            buffer.append(make_event())
        assert buffer.evicted_count == 0


# =============================================================================
# Aggregate Logging Tests
# =============================================================================


class TestEventBufferAggregateLogging:
    def test_logs_once_per_hundred_evictions(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=1)
        with patch("signalpost.telemetry.buffer.logger") as mock_logger:
            for _ in range(1 + 250):
                buffer.append(make_event())

        assert buffer.evicted_count == 250
        assert mock_logger.warning.call_count == 2
        kwargs = mock_logger.warning.call_args.kwargs
        assert kwargs["evicted_since_last_log"] == 100
        assert kwargs["evicted_total"] == 200

    def test_requeue_overflow_counts_toward_logging(self, make_event: MakeEvent) -> None:
        buffer = EventBuffer(max_size=10)
        with patch("signalpost.telemetry.buffer.logger") as mock_logger:
            buffer.requeue([make_event() for _ in range(110)])

        assert buffer.evicted_count == 100
        mock_logger.warning.assert_called_once()
