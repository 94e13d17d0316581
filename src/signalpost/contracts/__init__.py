"""Shared contracts for cross-boundary data types.

All dataclasses and enums that cross subsystem boundaries (producer ->
transport, transport -> delivery) are defined here. This package is a LEAF
MODULE with no outbound dependencies to core/telemetry.

Settings classes are NOT re-exported here - import them from
signalpost.core.config.
"""

from signalpost.contracts.enums import (
    DeliveryOutcome,
    DropReason,
    EventCategory,
    FlushTrigger,
)
from signalpost.contracts.events import Event, format_timestamp
from signalpost.contracts.host import HostContext
from signalpost.contracts.results import DeliveryResult, FlushResult
from signalpost.contracts.routing import Destination
from signalpost.contracts.trace import TraceContext

__all__ = [
    "DeliveryOutcome",
    "DeliveryResult",
    "Destination",
    "DropReason",
    "Event",
    "EventCategory",
    "FlushResult",
    "FlushTrigger",
    "HostContext",
    "TraceContext",
    "format_timestamp",
]
