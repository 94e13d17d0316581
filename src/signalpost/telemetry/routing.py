# src/signalpost/telemetry/routing.py
"""Category routing against the immutable routing table.

Resolution order for each category:
1. The category's own endpoint/credential, when configured
2. The legacy single endpoint (with LEGACY_INGEST_PATH appended) and
   legacy credential
3. Absence - the category cannot be delivered

Endpoint and credential resolve independently: a category may override
only its endpoint and still use the legacy credential.
"""

from signalpost.contracts.enums import EventCategory
from signalpost.contracts.routing import Destination
from signalpost.core.config import RoutingSettings

# Fixed suffix distinguishing the legacy single-endpoint (platform) mode
LEGACY_INGEST_PATH = "/api/v1/browser"


class RoutingResolver:
    """Resolves event categories to delivery destinations.

    Pure lookups: settings are frozen, so nothing is cached or invalidated.

    Example:
        resolver = RoutingResolver(RoutingSettings(endpoint="https://x"))
        resolver.endpoint_for(EventCategory.ERROR)
        # "https://x/api/v1/browser"
    """

    def __init__(self, settings: RoutingSettings) -> None:
        self._settings = settings

    def endpoint_for(self, category: EventCategory) -> str | None:
        override = self._settings.destinations.get(category)
        if override is not None and override.endpoint:
            return override.endpoint
        if self._settings.endpoint:
            return self._settings.endpoint.rstrip("/") + LEGACY_INGEST_PATH
        return None

    def credential_for(self, category: EventCategory) -> str | None:
        override = self._settings.destinations.get(category)
        if override is not None and override.credential:
            return override.credential
        return self._settings.credential or None

    def destination_for(self, category: EventCategory) -> Destination | None:
        """Resolve the full destination, or None if no endpoint resolves."""
        endpoint = self.endpoint_for(category)
        if endpoint is None:
            return None
        return Destination(endpoint=endpoint, credential=self.credential_for(category))

    def deliverable_categories(self) -> frozenset[EventCategory]:
        return frozenset(category for category in EventCategory if self.endpoint_for(category) is not None)

    def own_endpoints(self) -> frozenset[str]:
        """Every endpoint the transport itself sends to.

        Used by filtering so network observations of signalpost's own
        deliveries are never reported back as telemetry.
        """
        endpoints = {d.endpoint for d in self._settings.destinations.values() if d.endpoint}
        if self._settings.endpoint:
            endpoints.add(self._settings.endpoint.rstrip("/"))
        return frozenset(endpoints)
