"""
Signalpost: batched, routed telemetry delivery for running applications.

Producers submit observations (errors, network calls, performance metrics,
console output, custom events); signalpost buffers them, routes each category
to its ingestion service, and delivers with requeue-on-failure and W3C
trace-context propagation.
"""

__version__ = "0.1.0"
