# src/signalpost/core/config.py
"""
Configuration schema and loading for the signalpost transport.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction: routing is resolved
against the same configuration for the whole lifetime of a transport.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from signalpost.contracts.enums import EventCategory

# Prefix marking an ignore-list entry as a regular expression rather than
# a plain substring.
REGEX_PATTERN_PREFIX = "re:"


def _validate_endpoint(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"endpoint must be an http(s) URL, got {value!r}")
    return value


class DestinationSettings(BaseModel):
    """Per-category ingestion endpoint and credential.

    Either field may be omitted; the missing half falls back to the legacy
    single endpoint/credential in RoutingSettings.
    """

    model_config = {"frozen": True}

    endpoint: str | None = Field(default=None, description="Absolute ingestion URL for this category")
    credential: str | None = Field(default=None, description="Bearer credential for this category")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str | None) -> str | None:
        return _validate_endpoint(v)


class RoutingSettings(BaseModel):
    """Category routing table with a legacy single-destination fallback.

    Example YAML:
        routing:
          destinations:
            error:
              endpoint: https://errors.example.com/api/v1/browser
              credential: ${ERRORS_INGEST_KEY}
            performance:
              endpoint: https://pulse.example.com/api/v1/browser
          endpoint: https://platform.example.com   # legacy fallback
          credential: ${PLATFORM_KEY}
    """

    model_config = {"frozen": True}

    destinations: dict[EventCategory, DestinationSettings] = Field(
        default_factory=dict,
        description="Per-category endpoint/credential overrides",
    )
    endpoint: str | None = Field(
        default=None,
        description="Legacy single endpoint; '/api/v1/browser' is appended at resolution",
    )
    credential: str | None = Field(default=None, description="Legacy single credential")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str | None) -> str | None:
        return _validate_endpoint(v)


class FilterSettings(BaseModel):
    """Category suppression and ignore-lists.

    Patterns are plain substrings unless prefixed with ``re:``, in which
    case the remainder is a regular expression searched anywhere in the
    value.
    """

    model_config = {"frozen": True}

    ignore_errors: tuple[str, ...] = Field(default=(), description="Error messages to suppress")
    ignore_urls: tuple[str, ...] = Field(default=(), description="Network call URLs to suppress")
    disabled_categories: frozenset[EventCategory] = Field(
        default=frozenset(),
        description="Categories that are never submitted",
    )

    @field_validator("ignore_errors", "ignore_urls")
    @classmethod
    def validate_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject empty patterns and regexes that do not compile."""
        for i, pattern in enumerate(v):
            if not pattern:
                raise ValueError(f"pattern[{i}] must not be empty")
            if pattern.startswith(REGEX_PATTERN_PREFIX):
                try:
                    re.compile(pattern[len(REGEX_PATTERN_PREFIX) :])
                except re.error as e:
                    raise ValueError(f"pattern[{i}] {pattern!r} is not a valid regex: {e}") from e
        return v


class TraceSeedSettings(BaseModel):
    """Seed for the transport's initial trace context.

    A ``traceparent`` from the serving backend continues that trace; the
    explicit fields are used when no (valid) traceparent is given.
    """

    model_config = {"frozen": True}

    traceparent: str | None = None
    trace_id: str | None = None
    parent_span_id: str | None = None
    sampled: bool | None = None


class TransportSettings(BaseModel):
    """Top-level transport configuration.

    Validated once at load time; the transport trusts these values as given.
    """

    model_config = {"frozen": True}

    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    trace: TraceSeedSettings = Field(default_factory=TraceSeedSettings)

    # Delivery-time context sent with every batch
    project_id: str | None = None
    environment: str = "production"
    service: str | None = None
    release: str | None = None

    debug: bool = Field(default=False, description="Log per-event diagnostics")
    sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Admission probability for performance events",
    )
    max_buffer_size: int = Field(default=50, gt=0, description="Buffer length that forces a flush")
    max_queue_size: int = Field(
        default=1000,
        gt=0,
        description="Hard buffer capacity; oldest events are evicted beyond it",
    )
    flush_interval_seconds: float = Field(default=5.0, gt=0, description="Periodic flush cadence")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-delivery HTTP timeout")

    source_url: str = Field(default="", description="Location reported as each event's sourceUrl")
    user_agent: str | None = Field(default=None, description="Overrides the default user agent string")

    @model_validator(mode="after")
    def validate_queue_capacity(self) -> "TransportSettings":
        if self.max_queue_size < self.max_buffer_size:
            raise ValueError(
                f"max_queue_size ({self.max_queue_size}) must be >= max_buffer_size ({self.max_buffer_size})"
            )
        return self


# ${VAR} or ${VAR:-default}; variable names are upper-case shell identifiers
_ENV_REFERENCE = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _substitute_env(match: re.Match[str]) -> str:
    name, default = match.group(1), match.group(2)
    value = os.environ.get(name)
    if value is not None:
        return value
    if default is not None:
        return default
    # Left verbatim so validation reports the unresolved reference
    return match.group(0)


def _expand_env_vars(value: Any) -> Any:
    """Expand ``${VAR}`` / ``${VAR:-default}`` references in every string of a config tree.

    Credentials are typically written as ``credential: ${ERRORS_INGEST_KEY}``
    so they never live in the YAML file itself.
    """
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_substitute_env, value)
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_expand_env_vars(item) for item in value]
    return value


# Secret field names that are redacted in resolve_config() (exact matches)
_SECRET_FIELD_NAMES = frozenset({"api_key", "token", "password", "secret", "credential"})

# Secret field suffixes that are redacted in resolve_config()
_SECRET_FIELD_SUFFIXES = ("_secret", "_key", "_token", "_password", "_credential")

_REDACTED = "***"


def _is_secret_field(field_name: str) -> bool:
    name = field_name.lower()
    return name in _SECRET_FIELD_NAMES or name.endswith(_SECRET_FIELD_SUFFIXES)


def _redact_secrets(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: (_REDACTED if _is_secret_field(str(k)) and v is not None else _redact_secrets(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact_secrets(item) for item in value]
    return value


# Keys Dynaconf adds to as_dict() that are not transport settings
_DYNACONF_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})


def _read_config(config_path: Path) -> dict[str, Any]:
    from dynaconf import Dynaconf

    source = Dynaconf(
        envvar_prefix="SIGNALPOST",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )
    # Top-level keys come back upper-cased; nested keys are untouched
    return {key.lower(): value for key, value in source.as_dict().items() if key not in _DYNACONF_KEYS}


def load_settings(config_path: Path) -> TransportSettings:
    """Load transport settings from a YAML file.

    Precedence, highest first: ``SIGNALPOST_*`` environment variables
    (``SIGNALPOST_ROUTING__ENDPOINT`` for nested keys), the YAML file,
    then the schema defaults. ``${VAR}`` references are expanded after
    merging.

    Raises:
        FileNotFoundError: If config_path does not exist (Dynaconf would
            otherwise load an empty configuration)
        ValidationError: If the merged configuration is invalid
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return TransportSettings(**_expand_env_vars(_read_config(config_path)))


def resolve_config(settings: TransportSettings) -> dict[str, Any]:
    """Convert validated settings to a dict for diagnostics.

    Includes all settings (explicit + defaults) with credentials redacted.
    The returned dict is safe to log but must NOT be used to build a
    transport.

    Args:
        settings: Validated TransportSettings instance

    Returns:
        JSON-serializable dict with secret values replaced by '***'
    """
    config_dict = settings.model_dump(mode="json")
    redacted: dict[str, Any] = _redact_secrets(config_dict)
    return redacted
