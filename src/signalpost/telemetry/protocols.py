"""Protocol definitions at the transport's boundaries.

Producers (error hooks, logging handlers, HTTP client hooks, performance
observers) never hold a Transport; they receive an EventSink. This keeps
the buffer and trace context private to the transport and lets tests hand
producers a recording double.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from signalpost.contracts.enums import EventCategory
from signalpost.contracts.events import Event
from signalpost.contracts.host import HostContext
from signalpost.contracts.results import DeliveryResult
from signalpost.contracts.routing import Destination


@runtime_checkable
class EventSink(Protocol):
    """Capability handed to producers for submitting observations.

    Error handling:
        submit() MUST NOT raise and MUST NOT block - observations that
        cannot be accepted are dropped silently (with a debug log).
    """

    def submit(
        self,
        category: EventCategory,
        payload: Mapping[str, Any],
        correlation_id: str | None = None,
    ) -> None:
        """Submit one observation.

        Args:
            category: Kind of observation (drives routing and sampling)
            payload: Observation data; copied, so later mutation by the
                producer does not affect the queued event
            correlation_id: Optional request correlation id
        """
        ...


class HostContextProvider(Protocol):
    """Supplies the host's current location and user agent at submission time.

    Called once per submitted event, so it can reflect a changing location
    (current request path, current job). Must be cheap and must not raise.
    """

    def __call__(self) -> HostContext: ...


@runtime_checkable
class DeliveryProtocol(Protocol):
    """Delivers a flush's destination groups.

    Error handling:
        deliver_all() reports failures as FAILED DeliveryResults, one per
        group, in the iteration order of ``groups``. It must isolate groups
        from each other: one group's failure never affects another's result.
    """

    async def deliver_all(self, groups: Mapping[Destination, Sequence[Event]]) -> list[DeliveryResult]: ...
