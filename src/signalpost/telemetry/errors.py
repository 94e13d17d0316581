# src/signalpost/telemetry/errors.py
"""Transport-specific exceptions.

These exceptions are for construction-time problems only. Runtime paths
(submit, flush, lifecycle hooks) never raise into producer code - they log
and degrade to "drop" or "retry later".
"""


class TransportConfigurationError(Exception):
    """Raised when a transport component cannot be built from its settings.

    Attributes:
        component: Name of the component that failed (e.g. "transport", "delivery")
        message: Human-readable error description
    """

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        self.message = message
        super().__init__(f"Component '{component}' failed: {message}")
