# tests/unit/telemetry/test_capture.py
"""Tests for the manual capture helpers."""

import pytest

from signalpost.contracts.enums import EventCategory
from signalpost.telemetry.capture import MAX_STACK_LINES, capture_error, capture_message, extract_stack


class PaymentDeclined(Exception):
    pass


def _raise_nested(depth: int) -> None:
    if depth == 0:
        raise PaymentDeclined("card declined")
    _raise_nested(depth - 1)


class TestExtractStack:
    def test_unraised_exception_has_no_stack(self) -> None:
        assert extract_stack(ValueError("never raised")) is None

    def test_stack_limited_to_innermost_lines(self) -> None:
        try:
            _raise_nested(20)
        except PaymentDeclined as e:
            stack = extract_stack(e)

        assert stack is not None
        lines = stack.splitlines()
        assert len(lines) == MAX_STACK_LINES
        assert lines[-1].endswith("PaymentDeclined: card declined")


class TestCaptureError:
    def test_submits_error_event(self, recording_sink) -> None:
        try:
            raise PaymentDeclined("card declined")
        except PaymentDeclined as e:
            capture_error(recording_sink, e, correlation_id="req-9", order_id="o-1")

        ((category, payload, correlation_id),) = recording_sink.submissions
        assert category == EventCategory.ERROR
        assert correlation_id == "req-9"
        assert payload["type"] == "captured"
        assert payload["message"] == "card declined"
        assert payload["name"] == "PaymentDeclined"
        assert payload["order_id"] == "o-1"
        assert "PaymentDeclined" in payload["stack"]

    def test_context_cannot_override_core_fields(self, recording_sink) -> None:
        capture_error(recording_sink, ValueError("bad"), message="spoofed")
        ((_, payload, _),) = recording_sink.submissions
        assert payload["message"] == "bad"
        assert payload["stack"] is None


class TestCaptureMessage:
    def test_submits_message(self, recording_sink) -> None:
        capture_message(recording_sink, "inventory low", level="warning", sku="A-1")
        ((category, payload, correlation_id),) = recording_sink.submissions
        assert category == EventCategory.ERROR
        assert correlation_id is None
        assert payload == {"sku": "A-1", "type": "message", "level": "warning", "message": "inventory low"}

    def test_default_level_is_error(self, recording_sink) -> None:
        capture_message(recording_sink, "something odd")
        assert recording_sink.submissions[0][1]["level"] == "error"

    def test_invalid_level_rejected(self, recording_sink) -> None:
        with pytest.raises(ValueError, match="level must be"):
            capture_message(recording_sink, "x", level="fatal")  # type: ignore[arg-type]
        assert recording_sink.submissions == []
