# src/signalpost/telemetry/capture.py
"""Manual capture helpers for producers.

Applications report handled exceptions and notable messages through an
EventSink without building payloads themselves:

    try:
        charge(order)
    except PaymentError as e:
        capture_error(sink, e, order_id=order.id)

Both helpers submit ERROR-category events, so they are subject to the
``ignore_errors`` list like any other error observation.
"""

import traceback
from typing import Any, Literal

from signalpost.contracts.enums import EventCategory
from signalpost.telemetry.protocols import EventSink

# Stack traces are cut to the innermost lines; ingestion only needs the tail
MAX_STACK_LINES = 10

MessageLevel = Literal["info", "warning", "error"]


def extract_stack(error: BaseException) -> str | None:
    """Formatted traceback of ``error``, limited to its last MAX_STACK_LINES lines.

    Returns None for an exception that was never raised (no traceback).
    """
    if error.__traceback__ is None:
        return None
    lines = "".join(traceback.format_exception(error)).rstrip("\n").splitlines()
    return "\n".join(lines[-MAX_STACK_LINES:])


def capture_error(
    sink: EventSink,
    error: BaseException,
    correlation_id: str | None = None,
    **context: Any,
) -> None:
    """Submit a handled exception as an error event.

    Args:
        sink: Where to submit
        error: The exception to report
        correlation_id: Optional request correlation id
        **context: Extra payload fields (cannot override the core fields)
    """
    payload: dict[str, Any] = {
        **context,
        "type": "captured",
        "message": str(error),
        "name": type(error).__name__,
        "stack": extract_stack(error),
    }
    sink.submit(EventCategory.ERROR, payload, correlation_id)


def capture_message(
    sink: EventSink,
    message: str,
    level: MessageLevel = "error",
    correlation_id: str | None = None,
    **context: Any,
) -> None:
    """Submit a message as an error event.

    Raises:
        ValueError: If level is not one of info, warning, error
    """
    if level not in ("info", "warning", "error"):
        raise ValueError(f"level must be 'info', 'warning' or 'error', got {level!r}")
    payload: dict[str, Any] = {
        **context,
        "type": "message",
        "level": level,
        "message": message,
    }
    sink.submit(EventCategory.ERROR, payload, correlation_id)
