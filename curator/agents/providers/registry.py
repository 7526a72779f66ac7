"""Provider lookup by name."""

from __future__ import annotations

from collections.abc import Callable

from curator.agents.providers.anthropic import AnthropicProvider
from curator.agents.providers.base import AI_MODELS, FALLBACK_ORDER, ProviderAdapter
from curator.agents.providers.cerebras import CerebrasProvider
from curator.config import Settings, get_settings
from curator.schemas.pydantic import ProviderInfo

_ADAPTERS = {
    "cerebras": CerebrasProvider,
    "anthropic": AnthropicProvider,
}


def get_provider(name: str, settings: Settings | None = None) -> ProviderAdapter:
    """Build a fresh adapter for *name*.

    Raises:
        KeyError: if *name* is not a known provider.
    """
    if name not in AI_MODELS:
        raise KeyError(f"Unknown AI provider: {name}")
    config = AI_MODELS[name]
    return _ADAPTERS[config.provider](config, settings or get_settings())


def get_available_providers(settings: Settings | None = None) -> list[str]:
    """Providers with credentials configured, in fallback order."""
    return [name for name in FALLBACK_ORDER if get_provider(name, settings).is_available()]


def get_first_available_provider(
    settings: Settings | None = None,
    preferred: str | None = None,
    provider_factory: Callable[[str], ProviderAdapter] | None = None,
) -> str | None:
    """First provider with credentials, trying *preferred* before the fallback order."""
    factory = provider_factory or (lambda name: get_provider(name, settings))
    candidates = dict.fromkeys([preferred, *FALLBACK_ORDER] if preferred else FALLBACK_ORDER)
    for name in candidates:
        if factory(name).is_available():
            return name
    return None


def list_provider_info(settings: Settings | None = None) -> list[ProviderInfo]:
    settings = settings or get_settings()
    return [
        ProviderInfo(
            name=config.name,
            label=config.label,
            model=config.model,
            cost=config.cost,
            available=get_provider(name, settings).is_available(),
        )
        for name, config in AI_MODELS.items()
    ]
