"""SDK client factories — one client per adapter instance, never module-global."""

from __future__ import annotations

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from curator.config import Settings


def build_cerebras_client(settings: Settings) -> AsyncOpenAI:
    """Return an AsyncOpenAI client pointed at the Cerebras OpenAI-compatible endpoint.

    SDK-level retries are disabled: retrying is the orchestrator's job.
    """
    return AsyncOpenAI(
        api_key=settings.cerebras_api_key,
        base_url=settings.cerebras_base_url,
        timeout=settings.provider_timeout_s,
        max_retries=0,
    )


def build_anthropic_client(settings: Settings) -> AsyncAnthropic:
    """Return an AsyncAnthropic client with SDK-level retries disabled."""
    return AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.provider_timeout_s,
        max_retries=0,
    )
