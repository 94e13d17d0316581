# src/signalpost/telemetry/delivery.py
"""Delivery engine: ships destination groups to ingestion services.

Each group is one ``POST {endpoint}`` carrying the whole batch:

    POST https://errors.example.com/api/v1/browser
    Content-Type: application/json
    Authorization: Bearer <credential>
    X-Session-Id: sess_...
    traceparent: 00-<trace>-<span>-01

    {"events": [...], "context": {"projectId", "environment", "service", "release"}}

A group is delivered or failed as a unit. The engine never retries and never
raises delivery errors: it reports a DeliveryResult and the transport decides
what to requeue.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import structlog

from signalpost.contracts.events import Event
from signalpost.contracts.results import DeliveryResult
from signalpost.contracts.routing import Destination
from signalpost.telemetry.trace import TraceContextManager

logger = structlog.get_logger(__name__)

SESSION_HEADER = "X-Session-Id"


def build_delivery_context(
    *,
    project_id: str | None,
    environment: str | None,
    service: str | None,
    release: str | None,
) -> dict[str, str | None]:
    """Delivery-time context sent alongside every batch."""
    return {
        "projectId": project_id,
        "environment": environment,
        "service": service,
        "release": release,
    }


def encode_batch(events: Sequence[Event], context: Mapping[str, Any]) -> bytes:
    """Encode a batch request body.

    Payload values that are not JSON-native (datetimes, Decimals, arbitrary
    objects) are rendered with str() so a single odd payload can never make
    its whole group undeliverable forever.
    """
    body = {"events": [event.to_wire() for event in events], "context": dict(context)}
    return json.dumps(body, default=str, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class DeliveryEngine:
    """Sends destination groups concurrently with per-destination isolation.

    One destination's outage (timeout, 5xx, DNS failure, unexpected bug)
    only fails that destination's group; every other group in the same
    flush is still delivered.

    Example:
        engine = DeliveryEngine(
            client=httpx.AsyncClient(timeout=10.0),
            session_id=session_id,
            context=build_delivery_context(project_id="p1", environment="production", service=None, release=None),
            trace=trace_manager,
        )
        results = await engine.deliver_all({destination: events})
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        session_id: str,
        context: Mapping[str, Any],
        trace: TraceContextManager | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Shared async client (connection pooling). The engine does
                not own it; whoever created it closes it.
            session_id: Sent as X-Session-Id on every request
            context: Delivery-time context (projectId, environment, service, release)
            trace: Source of the outgoing traceparent header, if any
        """
        self._client = client
        self._session_id = session_id
        self._context = dict(context)
        self._trace = trace

    def _headers(self, destination: Destination) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            SESSION_HEADER: self._session_id,
        }
        if destination.credential:
            headers["Authorization"] = f"Bearer {destination.credential}"
        if self._trace is not None:
            self._trace.inject(headers)
        return headers

    async def deliver(self, destination: Destination, events: Sequence[Event]) -> DeliveryResult:
        """Deliver one group in a single request.

        Returns:
            DELIVERED only for a 2xx response. Non-2xx statuses and
            network-level failures (httpx.HTTPError) are FAILED for the
            whole group.
        """
        content = encode_batch(events, self._context)
        start = time.perf_counter()
        try:
            response = await self._client.post(
                destination.endpoint,
                content=content,
                headers=self._headers(destination),
            )
        except httpx.HTTPError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                "Telemetry delivery failed",
                endpoint=destination.endpoint,
                event_count=len(events),
                error_type=type(e).__name__,
                error=str(e),
            )
            return DeliveryResult.failure(
                destination,
                len(events),
                error=f"{type(e).__name__}: {e}",
                latency_ms=latency_ms,
            )

        latency_ms = (time.perf_counter() - start) * 1000
        if response.is_success:
            logger.debug(
                "Telemetry batch delivered",
                endpoint=destination.endpoint,
                event_count=len(events),
                status_code=response.status_code,
                latency_ms=round(latency_ms, 2),
            )
            return DeliveryResult.success(
                destination,
                len(events),
                status_code=response.status_code,
                latency_ms=latency_ms,
            )

        logger.warning(
            "Telemetry delivery rejected",
            endpoint=destination.endpoint,
            event_count=len(events),
            status_code=response.status_code,
            reason=response.reason_phrase,
        )
        return DeliveryResult.failure(
            destination,
            len(events),
            error=f"HTTP {response.status_code}: {response.reason_phrase}",
            status_code=response.status_code,
            latency_ms=latency_ms,
        )

    async def deliver_all(self, groups: Mapping[Destination, Sequence[Event]]) -> list[DeliveryResult]:
        """Deliver every group concurrently.

        Results are returned in the iteration order of ``groups``. An
        unexpected exception inside one delivery is logged and reported as
        that group's failure; it never cancels or fails the other groups.
        """
        destinations = list(groups)
        outcomes = await asyncio.gather(
            *(self.deliver(destination, groups[destination]) for destination in destinations),
            return_exceptions=True,
        )

        results: list[DeliveryResult] = []
        for destination, outcome in zip(destinations, outcomes, strict=True):
            if isinstance(outcome, DeliveryResult):
                results.append(outcome)
                continue
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error(
                "Telemetry delivery crashed",
                endpoint=destination.endpoint,
                event_count=len(groups[destination]),
                error_type=type(outcome).__name__,
                error=str(outcome),
            )
            results.append(
                DeliveryResult.failure(
                    destination,
                    len(groups[destination]),
                    error=f"{type(outcome).__name__}: {outcome}",
                )
            )
        return results
