"""Provider adapters: the only path from the engine to real infrastructure."""

from typing import Any
from ..utils.errors import ConfigError
from .base import ProviderAdapter
from .memory import InMemoryProvider
from .gcloud import GcloudProvider

PROVIDERS = {
    "memory": InMemoryProvider,
    "gcloud": GcloudProvider,
}


def get_provider(name: str, **options: Any) -> ProviderAdapter:
    """
    Instantiate a provider adapter by name.

    Options with a None value are dropped so adapter defaults apply.
    """
    if name not in PROVIDERS:
        raise ConfigError(f"Unsupported provider: {name}. Choose one of: {', '.join(sorted(PROVIDERS))}")
    kwargs = {key: value for key, value in options.items() if value is not None}
    return PROVIDERS[name](**kwargs)


__all__ = [
    "ProviderAdapter",
    "InMemoryProvider",
    "GcloudProvider",
    "get_provider",
    "PROVIDERS",
]
