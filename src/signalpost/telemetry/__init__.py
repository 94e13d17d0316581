# src/signalpost/telemetry/__init__.py
"""Event transport and delivery subsystem.

Components:
- trace: TraceContextManager and traceparent format/parse
- routing: RoutingResolver (category -> endpoint + credential)
- buffer: EventBuffer, bounded and order-preserving with front requeue
- filtering: should_submit() for category switches and ignore-lists
- delivery: DeliveryEngine, concurrent per-destination httpx delivery
- transport: Transport, submit/flush/lifecycle and health metrics
- capture: capture_error() / capture_message() helpers for producers
- protocols: EventSink, DeliveryProtocol, HostContextProvider
- factory: create_transport() from TransportSettings
- errors: TransportConfigurationError for construction failures

Usage:
    from signalpost.telemetry import create_transport, capture_error

    transport = create_transport(settings)
    async with transport:
        capture_error(transport.sink, exc)
"""

from signalpost.telemetry.buffer import EventBuffer
from signalpost.telemetry.capture import capture_error, capture_message
from signalpost.telemetry.delivery import DeliveryEngine
from signalpost.telemetry.errors import TransportConfigurationError
from signalpost.telemetry.factory import create_transport, create_transport_from_config
from signalpost.telemetry.filtering import should_submit
from signalpost.telemetry.protocols import DeliveryProtocol, EventSink, HostContextProvider
from signalpost.telemetry.routing import LEGACY_INGEST_PATH, RoutingResolver
from signalpost.telemetry.trace import TraceContextManager, format_traceparent, parse_traceparent
from signalpost.telemetry.transport import Transport

__all__ = [
    "LEGACY_INGEST_PATH",
    "DeliveryEngine",
    "DeliveryProtocol",
    "EventBuffer",
    "EventSink",
    "HostContextProvider",
    "RoutingResolver",
    "TraceContextManager",
    "Transport",
    "TransportConfigurationError",
    "capture_error",
    "capture_message",
    "create_transport",
    "create_transport_from_config",
    "format_traceparent",
    "parse_traceparent",
    "should_submit",
]
