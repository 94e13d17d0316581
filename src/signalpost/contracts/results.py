"""Delivery and flush outcomes.

These types answer: "What happened when the transport tried to deliver?"
"""

from __future__ import annotations

from dataclasses import dataclass, field

from signalpost.contracts.enums import DeliveryOutcome, FlushTrigger
from signalpost.contracts.routing import Destination


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of delivering one destination group.

    A group succeeds or fails as a unit; there is no partial-batch result.

    Fields:
        destination: Where the group was sent
        outcome: DELIVERED only on a 2xx response
        event_count: Number of events in the group
        status_code: HTTP status, None on network-level failure
        error: Failure description, None on success
        latency_ms: Wall time of the request
    """

    destination: Destination
    outcome: DeliveryOutcome
    event_count: int
    status_code: int | None = None
    error: str | None = None
    latency_ms: float = 0.0

    @property
    def delivered(self) -> bool:
        return self.outcome == DeliveryOutcome.DELIVERED

    @classmethod
    def success(cls, destination: Destination, event_count: int, *, status_code: int, latency_ms: float) -> DeliveryResult:
        return cls(
            destination=destination,
            outcome=DeliveryOutcome.DELIVERED,
            event_count=event_count,
            status_code=status_code,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        destination: Destination,
        event_count: int,
        *,
        error: str,
        status_code: int | None = None,
        latency_ms: float = 0.0,
    ) -> DeliveryResult:
        return cls(
            destination=destination,
            outcome=DeliveryOutcome.FAILED,
            event_count=event_count,
            status_code=status_code,
            error=error,
            latency_ms=latency_ms,
        )


@dataclass(frozen=True, slots=True)
class FlushResult:
    """Summary of one flush cycle.

    A flush that found another flush in flight (or an empty buffer) is
    ``skipped`` and carries no deliveries.

    Fields:
        trigger: What initiated the flush
        skipped: True when the flush did no work
        delivered: Events acknowledged by their destination
        requeued: Events prepended back onto the buffer for the next cycle
        discarded: Events with no resolvable destination at flush time
        deliveries: Per-destination outcomes, in first-seen order
    """

    trigger: FlushTrigger
    skipped: bool = False
    delivered: int = 0
    requeued: int = 0
    discarded: int = 0
    deliveries: tuple[DeliveryResult, ...] = field(default_factory=tuple)

    @classmethod
    def noop(cls, trigger: FlushTrigger) -> FlushResult:
        return cls(trigger=trigger, skipped=True)
