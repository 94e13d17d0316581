# tests/unit/contracts/test_events.py
"""Tests for Event wire serialization and the result contracts."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta, timezone

import pytest

from signalpost.contracts.enums import DeliveryOutcome, EventCategory, FlushTrigger
from signalpost.contracts.events import Event, format_timestamp
from signalpost.contracts.results import DeliveryResult, FlushResult
from signalpost.contracts.routing import Destination


class TestFormatTimestamp:
    def test_millisecond_precision_with_z_suffix(self) -> None:
        value = datetime(2026, 1, 30, 12, 0, 0, 123456, tzinfo=UTC)
        assert format_timestamp(value) == "2026-01-30T12:00:00.123Z"

    def test_whole_seconds_keep_milliseconds(self) -> None:
        value = datetime(2026, 1, 30, 12, 0, 0, tzinfo=UTC)
        assert format_timestamp(value) == "2026-01-30T12:00:00.000Z"

    def test_non_utc_offset_is_kept(self) -> None:
        value = datetime(2026, 1, 30, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value).endswith("+02:00")


class TestEventToWire:
    def test_camel_case_fields(self, make_event: Callable[..., Event]) -> None:
        event = make_event(EventCategory.NETWORK, {"url": "https://api.example.com", "status": 500})
        wire = event.to_wire()
        assert wire == {
            "id": event.id,
            "category": "network",
            "timestamp": "2026-01-30T12:00:00.000Z",
            "sourceUrl": "https://app.example.com/checkout",
            "userAgent": "signalpost-tests",
            "sessionId": "sess_test_0000000",
            "payload": {"url": "https://api.example.com", "status": 500},
        }

    def test_correlation_id_only_when_present(self, make_event: Callable[..., Event]) -> None:
        assert "correlationId" not in make_event().to_wire()
        assert make_event(correlation_id="req-7").to_wire()["correlationId"] == "req-7"

    def test_event_is_immutable(self, make_event: Callable[..., Event]) -> None:
        event = make_event()
        with pytest.raises(AttributeError):
            event.id = "other"  # type: ignore[misc]


class TestDestination:
    def test_credential_masked_in_repr(self) -> None:
        destination = Destination("https://errors.example.com", "super-secret")
        assert "super-secret" not in repr(destination)
        assert "'***'" in repr(destination)

    def test_credential_distinguishes_destinations(self) -> None:
        assert Destination("https://x", "a") != Destination("https://x", "b")
        assert len({Destination("https://x", "a"), Destination("https://x", "a")}) == 1


class TestResults:
    def test_success_is_delivered(self) -> None:
        result = DeliveryResult.success(Destination("https://x"), 3, status_code=202, latency_ms=1.5)
        assert result.delivered
        assert result.outcome == DeliveryOutcome.DELIVERED
        assert result.error is None

    def test_failure_is_not_delivered(self) -> None:
        result = DeliveryResult.failure(Destination("https://x"), 3, error="HTTP 503", status_code=503)
        assert not result.delivered
        assert result.status_code == 503

    def test_noop_flush_is_skipped(self) -> None:
        result = FlushResult.noop(FlushTrigger.TIMER)
        assert result.skipped
        assert result.delivered == 0
        assert result.deliveries == ()
