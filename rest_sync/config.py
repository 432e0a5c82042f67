"""Configuration management for the connector."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from rest_sync.errors import TimestampParseError
from rest_sync.incremental import parse_timestamp
from rest_sync.providers import PROVIDERS, get_provider
from rest_sync.transport import DEFAULT_TIMEOUT_SECONDS

REQUIRED_CONFIGS = ("provider", "api_token")


@dataclass
class SyncConfig:
    """Configuration class for the connector."""

    provider: str
    api_token: str
    base_url: str
    objects: List[str] = field(default_factory=list)
    page_size: int = 0
    initial_sync_start: Optional[datetime] = None
    request_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS


def validate_configuration(configuration: dict) -> None:
    """
    Validate the configuration dictionary to ensure it contains all required parameters.
    This function is called at the start of the update method to ensure that the connector has all necessary configuration values.
    Args:
        configuration: a dictionary that holds the configuration settings for the connector.
    Raises:
        ValueError: if any required configuration parameter is missing or invalid.
    """
    for key in REQUIRED_CONFIGS:
        if not str(configuration.get(key, "")).strip():
            raise ValueError(f"Missing required configuration value: {key}")

    provider_name = str(configuration["provider"]).strip().lower()
    if provider_name not in PROVIDERS:
        raise ValueError(f"Unsupported provider '{provider_name}', expected one of: {', '.join(sorted(PROVIDERS))}")

    provider = get_provider(provider_name)
    if not provider.default_base_url and not str(configuration.get("base_url", "")).strip():
        raise ValueError(f"Missing required configuration value: base_url (no default for {provider_name})")

    for key in ("page_size", "request_timeout_seconds"):
        value = configuration.get(key)
        if value is None or str(value).strip() == "":
            continue
        try:
            number = int(str(value))
        except ValueError as e:
            raise ValueError(f"{key} must be a non-negative integer: {e}") from e
        if number < 0:
            raise ValueError(f"{key} must be a non-negative integer, got {number}")

    initial_sync_start = configuration.get("initial_sync_start")
    if initial_sync_start:
        try:
            parse_timestamp(str(initial_sync_start), field="initial_sync_start")
        except TimestampParseError as e:
            raise ValueError(f"initial_sync_start must be an RFC 3339 timestamp: {e}") from e

    unknown = [name for name in _parse_objects(configuration.get("objects")) if not provider.schema.has(name)]
    if unknown:
        raise ValueError(f"Unknown {provider_name} object(s) in configuration: {', '.join(unknown)}")


def parse_configuration(configuration: dict) -> SyncConfig:
    """Parse a validated configuration dictionary, filling in defaults."""

    def safe_int(value: Any, default: int) -> int:
        try:
            return int(str(value))
        except (ValueError, TypeError):
            return default

    provider = get_provider(str(configuration["provider"]))
    objects = _parse_objects(configuration.get("objects")) or provider.schema.object_names()

    initial_sync_start = None
    if configuration.get("initial_sync_start"):
        initial_sync_start = parse_timestamp(str(configuration["initial_sync_start"]), field="initial_sync_start")

    return SyncConfig(
        provider=provider.name,
        api_token=str(configuration["api_token"]).strip(),
        base_url=str(configuration.get("base_url") or provider.default_base_url).strip(),
        objects=objects,
        page_size=safe_int(configuration.get("page_size"), 0),
        initial_sync_start=initial_sync_start,
        request_timeout_seconds=safe_int(configuration.get("request_timeout_seconds"), DEFAULT_TIMEOUT_SECONDS),
    )


def _parse_objects(objects: Any) -> List[str]:
    if not objects:
        return []
    if isinstance(objects, (list, tuple)):
        return [str(name).strip() for name in objects if str(name).strip()]
    return [name.strip() for name in str(objects).split(",") if name.strip()]
