# src/signalpost/telemetry/trace.py
"""W3C Trace Context propagation.

Links events and outgoing calls made by the host application to
server-side traces via the ``traceparent`` header:

    traceparent = version "-" trace-id "-" parent-id "-" trace-flags
    00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01

Malformed inbound headers are never an error: parse_traceparent() returns
None and callers treat the header as absent.

Parsing recovers only the sender's own ids. ``parent_span_id`` is never
populated from the wire format; continuing a remote trace is done with
TraceContextManager.initialize_from_header(), which makes the remote span
the parent explicitly.
"""

from __future__ import annotations

import random
import re
from collections.abc import MutableMapping

import structlog

from signalpost.contracts.trace import TraceContext
from signalpost.core.identifiers import is_all_zero, new_span_id, new_trace_id

logger = structlog.get_logger(__name__)

TRACEPARENT_HEADER = "traceparent"
TRACEPARENT_VERSION = "00"

_TRACE_ID_PATTERN = re.compile(r"[a-f0-9]{32}")
_SPAN_ID_PATTERN = re.compile(r"[a-f0-9]{16}")
_FLAGS_PATTERN = re.compile(r"[a-f0-9]{2}")
_SAMPLED_FLAG = 0x01


def _valid_trace_id(value: str) -> bool:
    return bool(_TRACE_ID_PATTERN.fullmatch(value)) and not is_all_zero(value)


def _valid_span_id(value: str) -> bool:
    return bool(_SPAN_ID_PATTERN.fullmatch(value)) and not is_all_zero(value)


def format_traceparent(ctx: TraceContext) -> str:
    """Serialize a context as a ``traceparent`` header value."""
    flags = "01" if ctx.sampled else "00"
    return f"{TRACEPARENT_VERSION}-{ctx.trace_id}-{ctx.span_id}-{flags}"


def parse_traceparent(header: str) -> TraceContext | None:
    """Parse a ``traceparent`` header value.

    Requires exactly four ``-`` separated segments, version ``00``, a
    lowercase non-zero 32-hex trace id, a lowercase non-zero 16-hex span id
    and two hex flag digits.

    Args:
        header: Raw header value

    Returns:
        The sender's context (``parent_span_id`` always None), or None if
        the header is malformed in any way.

    Example:
        >>> parse_traceparent("00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01").sampled
        True
        >>> parse_traceparent("00-short-spanid-01") is None
        True
    """
    parts = header.split("-")
    if len(parts) != 4:
        return None

    version, trace_id, span_id, flags = parts
    if version != TRACEPARENT_VERSION:
        return None
    if not _valid_trace_id(trace_id):
        return None
    if not _valid_span_id(span_id):
        return None
    if not _FLAGS_PATTERN.fullmatch(flags):
        return None

    return TraceContext(
        trace_id=trace_id,
        span_id=span_id,
        parent_span_id=None,
        sampled=(int(flags, 16) & _SAMPLED_FLAG) == _SAMPLED_FLAG,
    )


class TraceContextManager:
    """Holds the current trace identity for one transport.

    At most one current context exists at a time. It is absent until
    initialize() (or initialize_from_header()) is called; every
    initialization overwrites the previous context.

    Thread Safety:
        NOT thread-safe. Owned by a single Transport running on one
        event loop.

    Example:
        manager = TraceContextManager()
        manager.initialize(sampled=True)
        headers = manager.headers_for_outgoing_call()
        # {"traceparent": "00-<trace>-<span>-01"}
    """

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng
        self._current: TraceContext | None = None

    def initialize(
        self,
        *,
        trace_id: str | None = None,
        parent_span_id: str | None = None,
        sampled: bool | None = None,
    ) -> TraceContext:
        """Start (or join) a trace and make it current.

        The application always gets its own fresh span id. A seed trace id
        that is not a valid non-zero 32-hex value is replaced by a fresh one.

        Args:
            trace_id: Trace to join, typically provided by the serving backend
            parent_span_id: Span of the backend operation that served the app
            sampled: Sampling decision; defaults to True when not given

        Returns:
            The new current context
        """
        if trace_id is not None and not _valid_trace_id(trace_id):
            logger.debug("Ignoring invalid seed trace id", trace_id=trace_id)
            trace_id = None

        self._current = TraceContext(
            trace_id=trace_id or new_trace_id(self._rng),
            span_id=new_span_id(self._rng),
            parent_span_id=parent_span_id,
            sampled=True if sampled is None else sampled,
        )
        return self._current

    def initialize_from_header(self, header: str | None) -> TraceContext:
        """Continue the trace described by an inbound ``traceparent``.

        The remote span becomes this context's parent. A missing or
        malformed header starts a fresh trace instead.
        """
        remote = parse_traceparent(header) if header else None
        if remote is None:
            return self.initialize()
        return self.initialize(
            trace_id=remote.trace_id,
            parent_span_id=remote.span_id,
            sampled=remote.sampled,
        )

    @property
    def current(self) -> TraceContext | None:
        """The current context, or None if none has been initialized."""
        return self._current

    def derive_child(self) -> TraceContext | None:
        """Create a child span of the current context without making it current."""
        if self._current is None:
            return None
        return TraceContext(
            trace_id=self._current.trace_id,
            span_id=new_span_id(self._rng),
            parent_span_id=self._current.span_id,
            sampled=self._current.sampled,
        )

    def format(self, ctx: TraceContext | None = None) -> str | None:
        """Serialize ``ctx`` (default: the current context) as a traceparent."""
        context = ctx if ctx is not None else self._current
        if context is None:
            return None
        return format_traceparent(context)

    @staticmethod
    def parse(header: str) -> TraceContext | None:
        return parse_traceparent(header)

    def headers_for_outgoing_call(self) -> dict[str, str]:
        """Headers to attach to an outgoing call; empty without a current context."""
        traceparent = self.format()
        if traceparent is None:
            return {}
        return {TRACEPARENT_HEADER: traceparent}

    def inject(self, headers: MutableMapping[str, str]) -> MutableMapping[str, str]:
        """Add ``traceparent`` to ``headers`` unless one is already present.

        Injection is idempotent: an existing traceparent (in any letter case)
        set by the caller is never overwritten.
        """
        if any(key.lower() == TRACEPARENT_HEADER for key in headers):
            return headers
        headers.update(self.headers_for_outgoing_call())
        return headers
