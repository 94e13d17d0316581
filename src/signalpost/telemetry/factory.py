# src/signalpost/telemetry/factory.py
"""Factory functions for creating a Transport from configuration.

This module provides the glue between configuration (TransportSettings)
and the runtime Transport instance. It handles:
1. Seeding the trace context (inbound traceparent or explicit seed)
2. Sanity-checking the routing table and warning about gaps
3. Creating the Transport with an injected or owned HTTP client

Usage:
    from signalpost.core.config import load_settings
    from signalpost.telemetry.factory import create_transport

    settings = load_settings(Path("signalpost.yaml"))
    transport = create_transport(settings)
    async with transport:
        instrument(transport.sink)
"""

from __future__ import annotations

import random
from pathlib import Path

import httpx
import structlog

from signalpost.contracts.enums import EventCategory
from signalpost.core.config import TraceSeedSettings, TransportSettings, load_settings
from signalpost.telemetry.errors import TransportConfigurationError
from signalpost.telemetry.protocols import HostContextProvider
from signalpost.telemetry.routing import RoutingResolver
from signalpost.telemetry.trace import TraceContextManager
from signalpost.telemetry.transport import Transport

logger = structlog.get_logger(__name__)


def _seed_trace(seed: TraceSeedSettings, rng: random.Random | None) -> TraceContextManager:
    """Build a trace manager initialized from the configured seed.

    A valid ``traceparent`` wins; otherwise the explicit fields are used.
    Without any seed the context stays absent until Transport.start().
    """
    manager = TraceContextManager(rng=rng)
    if seed.traceparent:
        if manager.parse(seed.traceparent) is not None:
            manager.initialize_from_header(seed.traceparent)
            return manager
        logger.warning("Ignoring malformed traceparent seed", traceparent=seed.traceparent)

    if seed.trace_id or seed.parent_span_id or seed.sampled is not None:
        manager.initialize(
            trace_id=seed.trace_id,
            parent_span_id=seed.parent_span_id,
            sampled=seed.sampled,
        )
    return manager


def _check_routing(settings: TransportSettings) -> None:
    """Log routing gaps that silently drop telemetry at runtime."""
    resolver = RoutingResolver(settings.routing)
    deliverable = resolver.deliverable_categories()
    enabled = frozenset(EventCategory) - settings.filters.disabled_categories

    if not deliverable:
        logger.warning(
            "transport_no_destinations",
            message="No endpoint configured for any category; all events will be dropped",
        )
        return

    undeliverable = sorted(category.value for category in enabled - deliverable)
    if undeliverable:
        logger.warning(
            "transport_categories_undeliverable",
            categories=undeliverable,
            message="Enabled categories without an endpoint are dropped at submission",
        )

    for category, destination in settings.routing.destinations.items():
        if destination.credential and not destination.endpoint and not settings.routing.endpoint:
            logger.warning(
                "transport_credential_without_endpoint",
                category=category.value,
            )


def create_transport(
    settings: TransportSettings,
    *,
    client: httpx.AsyncClient | None = None,
    host_context: HostContextProvider | None = None,
    rng: random.Random | None = None,
) -> Transport:
    """Create a Transport from validated settings.

    Args:
        settings: Transport settings from load_settings() or constructed directly
        client: Optional shared HTTP client. When omitted the transport owns
            its own client and closes it on close().
        host_context: Optional provider of the host's current location/user agent
        rng: Optional random source (tests)

    Returns:
        Transport ready to start().

    Raises:
        TransportConfigurationError: If the supplied HTTP client is already closed.
    """
    if client is not None and client.is_closed:
        raise TransportConfigurationError("transport", "HTTP client is already closed")

    _check_routing(settings)
    trace = _seed_trace(settings.trace, rng)

    transport = Transport(
        settings,
        client=client,
        trace=trace,
        host_context=host_context,
        rng=rng,
    )
    logger.debug(
        "transport_created",
        session_id=transport.session_id,
        max_buffer_size=settings.max_buffer_size,
        flush_interval_seconds=settings.flush_interval_seconds,
        sample_rate=settings.sample_rate,
    )
    return transport


def create_transport_from_config(
    config_path: Path,
    *,
    client: httpx.AsyncClient | None = None,
    host_context: HostContextProvider | None = None,
) -> Transport:
    """Load settings from a YAML file and create a Transport.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValidationError: If configuration fails validation
        TransportConfigurationError: If the supplied HTTP client is already closed
    """
    return create_transport(load_settings(config_path), client=client, host_context=host_context)
