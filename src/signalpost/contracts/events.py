# src/signalpost/contracts/events.py
"""Telemetry event records shipped to ingestion services.

An Event is created by the transport at submission time and is immutable
thereafter. It lives in the buffer until its destination group is delivered,
or until it is discarded (no destination, evicted on overflow).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from signalpost.contracts.enums import EventCategory


def format_timestamp(value: datetime) -> str:
    """Render a timezone-aware datetime as ISO-8601 UTC with millisecond precision.

    Example:
        >>> from datetime import UTC, datetime
        >>> format_timestamp(datetime(2026, 1, 30, 12, 0, 0, 123456, tzinfo=UTC))
        '2026-01-30T12:00:00.123Z'
    """
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Event:
    """A single observation awaiting delivery.

    Attributes:
        id: Event identifier, unique per process lifetime (``evt_...``)
        category: Kind of observation; drives routing and sampling
        timestamp: When the observation was submitted (UTC)
        source_url: Location of the host application at submission time
        user_agent: Host runtime identification string
        session_id: Session identifier of the owning transport (``sess_...``)
        payload: Producer-supplied observation data
        correlation_id: Optional producer-supplied request correlation id
    """

    id: str
    category: EventCategory
    timestamp: datetime
    source_url: str
    user_agent: str
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    correlation_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape expected by ingestion services.

        ``correlationId`` is omitted when absent.
        """
        wire: dict[str, Any] = {
            "id": self.id,
            "category": self.category.value,
            "timestamp": format_timestamp(self.timestamp),
            "sourceUrl": self.source_url,
            "userAgent": self.user_agent,
            "sessionId": self.session_id,
            "payload": self.payload,
        }
        if self.correlation_id is not None:
            wire["correlationId"] = self.correlation_id
        return wire
