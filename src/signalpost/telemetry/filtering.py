"""Submission filtering based on category switches and ignore-lists.

Events are filtered before they reach the buffer:
- Disabled categories: never submitted
- ERROR: suppressed when the payload ``message`` matches ``ignore_errors``
- NETWORK: suppressed when the payload ``url`` matches ``ignore_urls`` or
  points at one of signalpost's own endpoints (never report our own
  deliveries)
- Everything else: submitted

This module is the single source of truth for suppression, used by
Transport.submit() to decide which events to enqueue. Sampling is a separate
concern handled by the transport.
"""

import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from signalpost.contracts.enums import EventCategory
from signalpost.core.config import REGEX_PATTERN_PREFIX, FilterSettings


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern[len(REGEX_PATTERN_PREFIX) :])


def matches_any(value: str, patterns: Iterable[str]) -> bool:
    """True when ``value`` matches any pattern.

    Plain patterns match as substrings; ``re:`` patterns are searched as
    regular expressions.
    """
    for pattern in patterns:
        if pattern.startswith(REGEX_PATTERN_PREFIX):
            if _compile(pattern).search(value):
                return True
        elif pattern in value:
            return True
    return False


def should_submit(
    category: EventCategory,
    payload: Mapping[str, Any],
    filters: FilterSettings,
    own_endpoints: Iterable[str] = (),
) -> bool:
    """Determine whether an observation should be enqueued.

    Payload fields are only inspected when present and string-typed;
    anything else passes through (fail-open for unknown payload shapes).

    Args:
        category: Category of the observation
        payload: Producer-supplied payload
        filters: Configured ignore-lists and category switches
        own_endpoints: Endpoints signalpost delivers to

    Returns:
        True if the event should be submitted, False otherwise

    Example:
        >>> filters = FilterSettings(ignore_errors=("ResizeObserver",))
        >>> should_submit(EventCategory.ERROR, {"message": "ResizeObserver loop"}, filters)
        False
    """
    if category in filters.disabled_categories:
        return False

    match category:
        case EventCategory.ERROR:
            message = payload.get("message")
            if isinstance(message, str) and matches_any(message, filters.ignore_errors):
                return False

        case EventCategory.NETWORK:
            url = payload.get("url")
            if isinstance(url, str):
                if any(endpoint in url for endpoint in own_endpoints):
                    return False
                if matches_any(url, filters.ignore_urls):
                    return False

        case _:
            pass

    return True
