# src/signalpost/core/logging.py
"""Structured logging configuration for signalpost.

signalpost runs inside someone else's process, so by default it only
configures its own ``signalpost`` logger tree and leaves the host's root
logger alone. Standalone tools and test harnesses can opt into owning the
root logger instead.

Architecture:
    structlog loggers are routed through stdlib logging, and a
    ProcessorFormatter renders both structlog events and plain stdlib
    records with the same processor chain (JSON or console).
"""

import logging
import sys
from typing import IO, Any

import structlog
from structlog.stdlib import ProcessorFormatter

LIBRARY_LOGGER = "signalpost"

# Loggers of the HTTP stack. At DEBUG they log every connection and request
# line, which duplicates the delivery events signalpost logs itself.
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "hpack",
)

# Event-dict keys whose values must never reach a log sink
_CREDENTIAL_KEYS = frozenset({"credential", "authorization", "api_key", "token"})
_REDACTED = "***"


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop ProcessorFormatter's bookkeeping keys (_record, _from_structlog)."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _redact_credentials(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for key in event_dict.keys() & _CREDENTIAL_KEYS:
        if event_dict[key] is not None:
            event_dict[key] = _REDACTED
    return event_dict


def _shared_processors() -> list[Any]:
    """Processors applied to every record, structlog or stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        _redact_credentials,
    ]


def build_formatter(*, json_output: bool) -> ProcessorFormatter:
    """Formatter rendering structlog and stdlib records identically."""
    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
        processors: list[Any] = [_remove_internal_fields, structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        processors = [_remove_internal_fields, renderer]
    return ProcessorFormatter(processors=processors, foreign_pre_chain=_shared_processors())


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: IO[str] | None = None,
    install_root_handler: bool = False,
) -> logging.Handler:
    """Configure structlog and stdlib logging for signalpost.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        stream: Where to write; defaults to stderr so telemetry diagnostics
            never mix with host stdout.
        install_root_handler: Replace the root logger's handlers instead of
            configuring only the ``signalpost`` logger tree.

    Returns:
        The installed handler (tests inspect or remove it).
    """
    log_level = getattr(logging, level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration in tests must take effect on existing loggers
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(build_formatter(json_output=json_output))

    if install_root_handler:
        target = logging.getLogger()
    else:
        target = logging.getLogger(LIBRARY_LOGGER)
        target.propagate = False
    target.handlers = [handler]
    target.setLevel(log_level)

    # Never make noisy loggers less restrictive than the configured level
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)

    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
