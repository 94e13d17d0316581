"""Host application context stamped onto every event."""

import platform
import sys
from dataclasses import dataclass

from signalpost import __version__


def default_user_agent() -> str:
    """Identify the agent and host runtime, e.g. ``signalpost/0.1.0 CPython/3.12.4 (Linux)``."""
    return f"signalpost/{__version__} {platform.python_implementation()}/{platform.python_version()} ({platform.system() or sys.platform})"


@dataclass(frozen=True, slots=True)
class HostContext:
    """Where the host application currently is and what it runs on.

    Attributes:
        source_url: Current location of the host (page URL, request path, job name)
        user_agent: Host runtime identification string
    """

    source_url: str = ""
    user_agent: str = ""
