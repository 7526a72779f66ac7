"""FastAPI dependencies shared by the resume routes."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends

from curator.agents.providers.base import ProviderAdapter
from curator.agents.providers.registry import get_provider
from curator.config import Settings, get_settings
from curator.schemas.compendium import Compendium
from curator.services.compendium_loader import get_compendium


def compendium_dependency() -> Compendium:
    """The loaded compendium; 503 (ServiceUnavailableError) if it cannot be loaded."""
    return get_compendium()


def settings_dependency() -> Settings:
    return get_settings()


def provider_factory_dependency(
    settings: Settings = Depends(settings_dependency),
) -> Callable[[str], ProviderAdapter]:
    """Builds a fresh adapter per provider name. Overridden in tests."""
    return lambda name: get_provider(name, settings)
