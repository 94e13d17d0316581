"""W3C Trace Context identity.

These types answer: "Which distributed trace does this operation belong to?"
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Distributed-trace identity of the running application.

    Child contexts share ``trace_id``, carry a fresh ``span_id``, and set
    ``parent_span_id`` to the parent's ``span_id``.

    Attributes:
        trace_id: 16-byte trace identifier, 32 lowercase hex chars
        span_id: 8-byte span identifier, 16 lowercase hex chars
        parent_span_id: Span id of the parent operation, if known
        sampled: Whether the trace is recorded downstream
    """

    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    sampled: bool = True
