# tests/unit/telemetry/test_routing.py
"""Tests for category routing with per-category overrides and legacy fallback."""

import pytest

from signalpost.contracts.enums import EventCategory
from signalpost.contracts.routing import Destination
from signalpost.core.config import RoutingSettings
from signalpost.telemetry.routing import LEGACY_INGEST_PATH, RoutingResolver


class TestEndpointResolution:
    def test_legacy_fallback_appends_ingest_path(self) -> None:
        resolver = RoutingResolver(RoutingSettings(endpoint="https://x"))
        assert resolver.endpoint_for(EventCategory.ERROR) == "https://x/api/v1/browser"

    def test_legacy_trailing_slash_not_doubled(self) -> None:
        resolver = RoutingResolver(RoutingSettings(endpoint="https://x/"))
        assert resolver.endpoint_for(EventCategory.CUSTOM) == "https://x" + LEGACY_INGEST_PATH

    def test_override_used_verbatim(self) -> None:
        resolver = RoutingResolver(
            RoutingSettings(
                destinations={EventCategory.ERROR: {"endpoint": "https://errors.example.com/ingest"}},
                endpoint="https://platform.example.com",
            )
        )
        assert resolver.endpoint_for(EventCategory.ERROR) == "https://errors.example.com/ingest"
        assert resolver.endpoint_for(EventCategory.NETWORK) == "https://platform.example.com/api/v1/browser"

    def test_no_configuration_resolves_nothing(self) -> None:
        resolver = RoutingResolver(RoutingSettings())
        for category in EventCategory:
            assert resolver.endpoint_for(category) is None
            assert resolver.destination_for(category) is None
        assert resolver.deliverable_categories() == frozenset()


class TestCredentialResolution:
    def test_override_credential_wins(self) -> None:
        resolver = RoutingResolver(
            RoutingSettings(
                destinations={EventCategory.ERROR: {"credential": "err-key"}},
                endpoint="https://platform.example.com",
                credential="platform-key",
            )
        )
        assert resolver.credential_for(EventCategory.ERROR) == "err-key"
        assert resolver.credential_for(EventCategory.CONSOLE) == "platform-key"

    def test_endpoint_and_credential_resolve_independently(self) -> None:
        resolver = RoutingResolver(
            RoutingSettings(
                destinations={EventCategory.PERFORMANCE: {"endpoint": "https://pulse.example.com/v1"}},
                credential="platform-key",
            )
        )
        assert resolver.destination_for(EventCategory.PERFORMANCE) == Destination(
            "https://pulse.example.com/v1", "platform-key"
        )

    def test_missing_credential_is_none(self) -> None:
        resolver = RoutingResolver(RoutingSettings(endpoint="https://x"))
        assert resolver.credential_for(EventCategory.ERROR) is None


class TestDeliverableAndOwnEndpoints:
    def test_partial_routing_table(self) -> None:
        resolver = RoutingResolver(
            RoutingSettings(
                destinations={
                    EventCategory.ERROR: {"endpoint": "https://errors.example.com/ingest"},
                    EventCategory.NETWORK: {"credential": "no-endpoint"},
                }
            )
        )
        assert resolver.deliverable_categories() == frozenset({EventCategory.ERROR})

    @pytest.mark.parametrize("legacy", ["https://platform.example.com", "https://platform.example.com/"])
    def test_own_endpoints(self, legacy: str) -> None:
        resolver = RoutingResolver(
            RoutingSettings(
                destinations={EventCategory.ERROR: {"endpoint": "https://errors.example.com/ingest"}},
                endpoint=legacy,
            )
        )
        assert resolver.own_endpoints() == frozenset(
            {"https://errors.example.com/ingest", "https://platform.example.com"}
        )
