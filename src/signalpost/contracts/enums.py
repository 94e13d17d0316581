"""All categories, triggers, and outcomes used across subsystem boundaries."""

from enum import StrEnum


class EventCategory(StrEnum):
    """Kind of observation an event represents.

    Serialized verbatim into the ``category`` field of the wire format.
    """

    ERROR = "error"
    NETWORK = "network"
    PERFORMANCE = "performance"
    CONSOLE = "console"
    CUSTOM = "custom"


class FlushTrigger(StrEnum):
    """What initiated a flush.

    Carried on FlushResult and in log records so operators can tell a
    size-triggered flush from a timer tick or a lifecycle signal.
    """

    SIZE = "size"
    TIMER = "timer"
    TERMINATE = "terminate"
    HIDDEN = "hidden"
    MANUAL = "manual"
    CLOSE = "close"


class DeliveryOutcome(StrEnum):
    """Result of delivering one destination group."""

    DELIVERED = "delivered"
    FAILED = "failed"


class DropReason(StrEnum):
    """Why an event never reached (or left) the buffer without delivery."""

    CLOSED = "closed"
    FILTERED = "filtered"
    SAMPLED = "sampled"
    NO_DESTINATION = "no_destination"
    UNDELIVERABLE = "undeliverable"
    EVICTED = "evicted"
