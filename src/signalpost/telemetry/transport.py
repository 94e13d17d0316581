# src/signalpost/telemetry/transport.py
"""Transport: buffering, routing, sampling and requeue-on-failure delivery.

The Transport is the central hub of signalpost:
1. Accepts observations from producers via submit() (never blocks, never raises)
2. Filters by category switches / ignore-lists and samples performance events
3. Drops categories with no resolvable destination at submission time
4. Buffers events in submission order, bounded by max_queue_size
5. Flushes on size threshold, timer, terminate and hidden signals
6. Groups each flush by destination and delivers groups concurrently
7. Prepends failed groups back onto the buffer for the next flush

Design principles:
- At-least-once delivery: an event leaves the buffer only when its
  destination acknowledged it, or when it can never be delivered
- Per-destination isolation: one destination's outage never blocks or
  fails another destination's delivery
- No backoff state: retry cadence is the normal flush cadence
- Drops are policy, not errors: logged only in debug mode

Concurrency:
    Single asyncio event loop, no locks. Flushes are serialized by an
    in-flight flag, and flush() drains the buffer before its first await,
    so two flushes never interleave their read-modify-write of the buffer.
"""

from __future__ import annotations

import asyncio
import platform
import random
from collections import Counter
from collections.abc import Mapping
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

import httpx
import structlog

from signalpost.contracts.enums import DropReason, EventCategory, FlushTrigger
from signalpost.contracts.events import Event
from signalpost.contracts.host import HostContext, default_user_agent
from signalpost.contracts.results import FlushResult
from signalpost.contracts.routing import Destination
from signalpost.core.config import TransportSettings
from signalpost.core.identifiers import new_event_id, new_session_id
from signalpost.telemetry.buffer import EventBuffer
from signalpost.telemetry.delivery import DeliveryEngine, build_delivery_context
from signalpost.telemetry.filtering import should_submit
from signalpost.telemetry.protocols import DeliveryProtocol, EventSink, HostContextProvider
from signalpost.telemetry.routing import RoutingResolver
from signalpost.telemetry.trace import TraceContextManager

logger = structlog.get_logger(__name__)

SESSION_START_EVENT = "session.start"


class _TransportSink:
    """Submit-only view of a Transport handed to producers."""

    __slots__ = ("_transport",)

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def submit(
        self,
        category: EventCategory | str,
        payload: Mapping[str, Any],
        correlation_id: str | None = None,
    ) -> None:
        self._transport.submit(category, payload, correlation_id)


class Transport:
    """Buffers observations and delivers them, routed per category.

    Flush triggers (all converge on flush()):
    - SIZE: buffer length reached max_buffer_size during submit()
    - TIMER: every flush_interval_seconds once start() was awaited
    - TERMINATE / HIDDEN: on_before_terminate() / on_visibility_hidden()
    - MANUAL / CLOSE: explicit flush() and close()

    Failure handling:
    - Configuration gaps drop the event at submission (diagnostic log
      when debug is on)
    - A failed destination group is requeued ahead of newer events, in
      its original order
    - Overflow beyond max_queue_size evicts the oldest events

    Example:
        >>> transport = Transport(settings)
        >>> async with transport:
        ...     sink = transport.sink
        ...     sink.submit(EventCategory.ERROR, {"message": "boom"})
        ...     await transport.flush()
    """

    def __init__(
        self,
        settings: TransportSettings,
        *,
        client: httpx.AsyncClient | None = None,
        engine: DeliveryProtocol | None = None,
        trace: TraceContextManager | None = None,
        host_context: HostContextProvider | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Validated transport settings (trusted as given)
            client: HTTP client for deliveries. When omitted, the transport
                creates one and closes it in close().
            engine: Delivery engine override; built from ``client`` when omitted
            trace: Trace context manager; a fresh, uninitialized one when omitted
            host_context: Supplies source URL / user agent per event; defaults
                to settings.source_url and settings.user_agent
            rng: Random source for ids and sampling (tests pass a seeded one)
        """
        self._settings = settings
        self._rng = rng or random.Random()
        self._session_id = new_session_id(self._rng)
        self._resolver = RoutingResolver(settings.routing)
        self._own_endpoints = self._resolver.own_endpoints()
        self._trace = trace or TraceContextManager(rng=rng)
        self._host_context = host_context or self._static_host_context(settings)

        self._owned_client: httpx.AsyncClient | None = None
        if engine is None:
            if client is None:
                client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
                self._owned_client = client
            engine = DeliveryEngine(
                client=client,
                session_id=self._session_id,
                context=build_delivery_context(
                    project_id=settings.project_id,
                    environment=settings.environment,
                    service=settings.service,
                    release=settings.release,
                ),
                trace=self._trace,
            )
        self._engine = engine

        self._buffer = EventBuffer(max_size=settings.max_queue_size)
        self._sink = _TransportSink(self)

        # Flush coordination
        self._flushing = False
        self._pending_flush: asyncio.Task[FlushResult] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._started = False
        self._closed = False

        # Health metrics
        self._events_submitted = 0
        self._events_delivered = 0
        self._events_requeued = 0
        self._events_dropped: Counter[DropReason] = Counter()
        self._flush_count = 0
        self._destination_failures: dict[str, int] = {}

    @staticmethod
    def _static_host_context(settings: TransportSettings) -> HostContextProvider:
        context = HostContext(
            source_url=settings.source_url,
            user_agent=settings.user_agent or default_user_agent(),
        )
        return lambda: context

    # ------------------------------------------------------------------
    # Producer interface
    # ------------------------------------------------------------------

    @property
    def sink(self) -> EventSink:
        """Submit-only capability to hand to producers."""
        return self._sink

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def trace(self) -> TraceContextManager:
        return self._trace

    @property
    def resolver(self) -> RoutingResolver:
        return self._resolver

    def submit(
        self,
        category: EventCategory | str,
        payload: Mapping[str, Any],
        correlation_id: str | None = None,
    ) -> None:
        """Queue an observation for delivery.

        Never blocks and never raises: observations that are filtered,
        sampled out, or have no destination are dropped. When the buffer
        reaches max_buffer_size a flush is scheduled on the running loop
        (not awaited).

        Args:
            category: Observation category (EventCategory or its string value)
            payload: Observation data (shallow-copied)
            correlation_id: Optional request correlation id
        """
        try:
            self._submit(category, payload, correlation_id)
        except Exception as e:
            # Producers must never see telemetry failures
            logger.error(
                "Telemetry submit failed",
                category=str(category),
                error_type=type(e).__name__,
                error=str(e),
            )

    def _submit(
        self,
        category: EventCategory | str,
        payload: Mapping[str, Any],
        correlation_id: str | None,
    ) -> None:
        if self._closed:
            self._record_drop(DropReason.CLOSED, category)
            return

        try:
            category = EventCategory(category)
        except ValueError:
            self._record_drop(DropReason.FILTERED, category, detail="unknown category")
            return

        if not should_submit(category, payload, self._settings.filters, self._own_endpoints):
            self._record_drop(DropReason.FILTERED, category)
            return

        # Sampling applies to performance events only
        if category == EventCategory.PERFORMANCE and not self._rng.random() < self._settings.sample_rate:
            self._record_drop(DropReason.SAMPLED, category)
            return

        if self._resolver.endpoint_for(category) is None:
            self._record_drop(DropReason.NO_DESTINATION, category)
            return

        host = self._host_context()
        event = Event(
            id=new_event_id(self._rng),
            category=category,
            timestamp=datetime.now(UTC),
            source_url=host.source_url,
            user_agent=host.user_agent,
            session_id=self._session_id,
            payload=dict(payload),
            correlation_id=correlation_id,
        )
        self._buffer.append(event)
        self._events_submitted += 1

        if self._settings.debug:
            logger.info("Event queued", event_id=event.id, category=category.value, queue_depth=len(self._buffer))

        if len(self._buffer) >= self._settings.max_buffer_size:
            self._schedule_flush(FlushTrigger.SIZE)

    def _record_drop(self, reason: DropReason, category: EventCategory | str, *, detail: str | None = None) -> None:
        # Drops are expected policy outcomes; surfaced only in debug mode
        self._events_dropped[reason] += 1
        if self._settings.debug:
            logger.info("Event dropped", reason=reason.value, category=str(category), detail=detail)

    # ------------------------------------------------------------------
    # Host lifecycle interface
    # ------------------------------------------------------------------

    def on_before_terminate(self) -> None:
        """Host is about to exit: flush without waiting (best effort)."""
        self._schedule_flush(FlushTrigger.TERMINATE)

    def on_visibility_hidden(self) -> None:
        """Host went to the background: flush without waiting (best effort)."""
        self._schedule_flush(FlushTrigger.HIDDEN)

    def _schedule_flush(self, trigger: FlushTrigger) -> None:
        """Start a flush task unless one is already scheduled and unfinished."""
        if self._pending_flush is not None and not self._pending_flush.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the timer or the next lifecycle signal picks the events up
            logger.debug("No running event loop, flush deferred", trigger=trigger.value)
            return

        task = loop.create_task(self.flush(trigger), name=f"signalpost-flush-{trigger.value}")
        self._pending_flush = task
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    async def flush(self, trigger: FlushTrigger = FlushTrigger.MANUAL) -> FlushResult:
        """Drain the buffer and deliver it, grouped by destination.

        A flush that starts while another is in flight, or finds the buffer
        empty, is a no-op. Events whose destination no longer resolves are
        discarded. Events of failed groups are prepended back onto the
        buffer in their original relative order, ahead of anything submitted
        while this flush was in flight.

        Never raises delivery errors.
        """
        if self._flushing:
            logger.debug("Flush already in flight, skipping", trigger=trigger.value)
            return FlushResult.noop(trigger)
        if not len(self._buffer):
            return FlushResult.noop(trigger)

        self._flushing = True
        try:
            return await self._flush(trigger)
        finally:
            self._flushing = False

    async def _flush(self, trigger: FlushTrigger) -> FlushResult:
        # Snapshot and empty the live buffer before the first await
        snapshot = self._buffer.drain()
        self._flush_count += 1

        routed: list[tuple[Event, Destination]] = []
        groups: dict[Destination, list[Event]] = {}
        discarded = 0
        for event in snapshot:
            destination = self._resolver.destination_for(event.category)
            if destination is None:
                discarded += 1
                continue
            routed.append((event, destination))
            groups.setdefault(destination, []).append(event)

        if discarded:
            self._events_dropped[DropReason.UNDELIVERABLE] += discarded
            logger.debug("Discarded undeliverable events", count=discarded, trigger=trigger.value)

        if not groups:
            return FlushResult(trigger=trigger, discarded=discarded)

        try:
            results = await self._engine.deliver_all(groups)
        except asyncio.CancelledError:
            # Host cancelled us mid-flight: keep the events for a later attempt
            self._buffer.requeue(event for event, _ in routed)
            self._events_requeued += len(routed)
            raise
        except Exception as e:
            logger.error(
                "Telemetry flush failed unexpectedly",
                trigger=trigger.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            requeued = [event for event, _ in routed]
            self._buffer.requeue(requeued)
            self._events_requeued += len(requeued)
            return FlushResult(trigger=trigger, requeued=len(requeued), discarded=discarded)

        failed_destinations = {result.destination for result in results if not result.delivered}
        delivered = sum(result.event_count for result in results if result.delivered)
        for destination in failed_destinations:
            self._destination_failures[destination.endpoint] = self._destination_failures.get(destination.endpoint, 0) + 1

        # Original snapshot order, not group order
        failed = [event for event, destination in routed if destination in failed_destinations]
        if failed:
            self._buffer.requeue(failed)

        self._events_delivered += delivered
        self._events_requeued += len(failed)

        if self._settings.debug:
            logger.info(
                "Flushed events",
                trigger=trigger.value,
                delivered=delivered,
                requeued=len(failed),
                discarded=discarded,
                destinations=len(groups),
            )

        return FlushResult(
            trigger=trigger,
            delivered=delivered,
            requeued=len(failed),
            discarded=discarded,
            deliveries=tuple(results),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the periodic flush timer and announce the session.

        Initializes a fresh trace context if none was supplied. Idempotent.
        """
        if self._started or self._closed:
            return
        self._started = True

        if self._trace.current is None:
            self._trace.initialize()

        self._timer_task = asyncio.get_running_loop().create_task(
            self._flush_periodically(),
            name="signalpost-flush-timer",
        )

        host = self._host_context()
        self.submit(
            EventCategory.CUSTOM,
            {
                "name": SESSION_START_EVENT,
                "sessionId": self._session_id,
                "sourceUrl": host.source_url,
                "userAgent": host.user_agent,
                "service": self._settings.service,
                "environment": self._settings.environment,
                "release": self._settings.release,
                "runtime": platform.python_implementation(),
                "runtimeVersion": platform.python_version(),
                "platform": platform.platform(),
            },
        )
        if self._settings.debug:
            logger.info("Telemetry transport started", session_id=self._session_id)

    async def _flush_periodically(self) -> None:
        interval = self._settings.flush_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.flush(FlushTrigger.TIMER)
            except Exception as e:
                # CRITICAL: Log but don't stop - the timer is the retry cadence
                logger.error("Periodic flush failed", error_type=type(e).__name__, error=str(e))

    async def close(self) -> None:
        """Stop the timer, perform a final flush and release the HTTP client.

        Idempotent. After close(), submit() drops silently. Events still
        undelivered after the final flush are logged and discarded with
        the transport.
        """
        if self._closed:
            return
        self._closed = True

        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        # Let scheduled flushes finish before the final one
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        await self.flush(FlushTrigger.CLOSE)

        if len(self._buffer):
            logger.warning(
                "Telemetry transport closed with undelivered events",
                undelivered=len(self._buffer),
            )

        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None

        logger.info("Telemetry transport closing", **self.health_metrics)

    async def __aenter__(self) -> Transport:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def queue_depth(self) -> int:
        return len(self._buffer)

    def pending_events(self) -> tuple[Event, ...]:
        """Copy of the events currently awaiting delivery, oldest first."""
        return self._buffer.snapshot()

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Return transport health metrics for monitoring.

        - events_submitted: Accepted into the buffer
        - events_delivered: Acknowledged by their destination
        - events_requeued: Requeue operations after failed deliveries (an
          event retried twice counts twice)
        - events_dropped: Per-reason drop counts
        - events_evicted: Evicted from a full buffer
        - flushes: Flushes that did work
        - destination_failures: Failed group deliveries per endpoint
        - queue_depth / queue_maxsize: Current and maximum buffer length
        """
        return {
            "session_id": self._session_id,
            "events_submitted": self._events_submitted,
            "events_delivered": self._events_delivered,
            "events_requeued": self._events_requeued,
            "events_dropped": {reason.value: count for reason, count in self._events_dropped.items()},
            "events_evicted": self._buffer.evicted_count,
            "flushes": self._flush_count,
            "destination_failures": self._destination_failures.copy(),
            "queue_depth": len(self._buffer),
            "queue_maxsize": self._buffer.max_size,
        }
