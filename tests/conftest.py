# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- make_settings: Build TransportSettings with test-friendly defaults
- make_event: Build an Event without going through a Transport
- RecordingSink: EventSink double that keeps every submission

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from signalpost.contracts.enums import EventCategory
from signalpost.contracts.events import Event
from signalpost.core.config import TransportSettings

# =============================================================================
# Test Doubles
# =============================================================================


class RecordingSink:
    """EventSink that records submissions instead of queueing them."""

    def __init__(self) -> None:
        self.submissions: list[tuple[EventCategory, dict[str, Any], str | None]] = []

    def submit(
        self,
        category: EventCategory,
        payload: Mapping[str, Any],
        correlation_id: str | None = None,
    ) -> None:
        self.submissions.append((category, dict(payload), correlation_id))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_settings() -> Callable[..., TransportSettings]:
    """Factory for TransportSettings.

    Defaults to a single legacy endpoint so every category is deliverable,
    and a flush interval long enough that the timer never fires in a test.
    """

    def _make(**overrides: Any) -> TransportSettings:
        values: dict[str, Any] = {
            "routing": {"endpoint": "https://ingest.example.com"},
            "flush_interval_seconds": 3600.0,
        }
        values.update(overrides)
        return TransportSettings(**values)

    return _make


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for Events with fixed, deterministic fields."""
    counter = iter(range(1_000_000))

    def _make(
        category: EventCategory = EventCategory.ERROR,
        payload: dict[str, Any] | None = None,
        **overrides: Any,
    ) -> Event:
        values: dict[str, Any] = {
            "id": f"evt_test_{next(counter)}",
            "category": category,
            "timestamp": datetime(2026, 1, 30, 12, 0, 0, tzinfo=UTC),
            "source_url": "https://app.example.com/checkout",
            "user_agent": "signalpost-tests",
            "session_id": "sess_test_0000000",
            "payload": payload if payload is not None else {},
        }
        values.update(overrides)
        return Event(**values)

    return _make


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
