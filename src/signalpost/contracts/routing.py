"""Delivery destinations.

These types answer: "Where does an event go, and with which credential?"
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Destination:
    """Resolved (endpoint, credential) pair for a category.

    Hashable so a flush can group events by destination. Two categories
    sharing an endpoint but not a credential are distinct destinations.

    Attributes:
        endpoint: Absolute ingestion URL events are POSTed to
        credential: Bearer credential, or None to send unauthenticated
    """

    endpoint: str
    credential: str | None = None

    def __repr__(self) -> str:
        # Credentials never appear in reprs (and therefore logs)
        masked = "None" if self.credential is None else "'***'"
        return f"Destination(endpoint={self.endpoint!r}, credential={masked})"
