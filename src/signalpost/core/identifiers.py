"""Identifier generation for sessions, events, traces, and spans.

This module is in core/ so any subsystem can mint identifiers without
creating cross-subsystem imports. Session and event ids only need to be
unique for the lifetime of the process: a millisecond timestamp prefix plus a
short random suffix is enough, and cryptographic strength is not required.

All functions accept an optional ``random.Random`` so tests can make them
deterministic.
"""

from __future__ import annotations

import random
import string
import time

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_HEX_ALPHABET = "0123456789abcdef"
_SUFFIX_LENGTH = 7

TRACE_ID_LENGTH = 32
SPAN_ID_LENGTH = 16

_default_rng = random.Random()


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def _prefixed_id(prefix: str, rng: random.Random | None) -> str:
    source = rng or _default_rng
    millis = time.time_ns() // 1_000_000
    suffix = "".join(source.choices(_BASE36_ALPHABET, k=_SUFFIX_LENGTH))
    return f"{prefix}_{_to_base36(millis)}_{suffix}"


def new_session_id(rng: random.Random | None = None) -> str:
    """Return a session identifier, e.g. ``sess_mkz3b1c0_4f9qk2a``."""
    return _prefixed_id("sess", rng)


def new_event_id(rng: random.Random | None = None) -> str:
    """Return an event identifier, e.g. ``evt_mkz3b1c0_8d0xw1p``.

    Event ids live in a separate namespace from session ids (distinct prefix).
    """
    return _prefixed_id("evt", rng)


def random_hex(length: int, rng: random.Random | None = None) -> str:
    """Return ``length`` lowercase hex characters drawn uniformly at random.

    Args:
        length: Number of characters to produce (0 returns an empty string)
        rng: Random source; the module default is used when omitted

    Raises:
        ValueError: If length is negative
    """
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    source = rng or _default_rng
    return "".join(source.choices(_HEX_ALPHABET, k=length))


def is_all_zero(identifier: str) -> bool:
    """True for the reserved all-zero trace/span id."""
    return identifier.strip("0") == ""


def _nonzero_hex(length: int, rng: random.Random | None) -> str:
    while True:
        candidate = random_hex(length, rng)
        if not is_all_zero(candidate):
            return candidate


def new_trace_id(rng: random.Random | None = None) -> str:
    """Return a 32-hex trace id that is never the reserved all-zero value."""
    return _nonzero_hex(TRACE_ID_LENGTH, rng)


def new_span_id(rng: random.Random | None = None) -> str:
    """Return a 16-hex span id that is never the reserved all-zero value."""
    return _nonzero_hex(SPAN_ID_LENGTH, rng)
