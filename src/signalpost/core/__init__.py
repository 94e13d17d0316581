"""Core infrastructure: Configuration, Identifiers, Logging."""

from signalpost.core.config import (
    DestinationSettings,
    FilterSettings,
    RoutingSettings,
    TraceSeedSettings,
    TransportSettings,
    load_settings,
    resolve_config,
)
from signalpost.core.identifiers import (
    new_event_id,
    new_session_id,
    new_span_id,
    new_trace_id,
    random_hex,
)
from signalpost.core.logging import configure_logging, get_logger

__all__ = [
    "DestinationSettings",
    "FilterSettings",
    "RoutingSettings",
    "TraceSeedSettings",
    "TransportSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "new_event_id",
    "new_session_id",
    "new_span_id",
    "new_trace_id",
    "random_hex",
    "resolve_config",
]
