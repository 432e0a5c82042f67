"""Registry of the providers the connector can sync from."""

from rest_sync.provider import Provider
from rest_sync.providers import okta, supersend

PROVIDERS = {
    "okta": okta.build_provider,
    "supersend": supersend.build_provider,
}


def get_provider(name: str) -> Provider:
    """
    Raises:
        ValueError: if no provider is registered under the name.
    """
    try:
        factory = PROVIDERS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unsupported provider '{name}', expected one of: {', '.join(sorted(PROVIDERS))}") from None
    return factory()


__all__ = ["PROVIDERS", "get_provider"]
