"""Anthropic Claude adapter via the Messages API."""

from __future__ import annotations

import logging

import anthropic
from anthropic import AsyncAnthropic

from curator.agents.providers.base import BackendFailure, Completion, ModelConfig, ProviderAdapter
from curator.clients import build_anthropic_client
from curator.config import Settings

logger = logging.getLogger(__name__)


class AnthropicProvider(ProviderAdapter):
    def __init__(
        self,
        config: ModelConfig,
        settings: Settings,
        client: AsyncAnthropic | None = None,
    ) -> None:
        super().__init__(config, settings)
        self._client = client

    def is_available(self) -> bool:
        return bool(self.settings.anthropic_api_key)

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = build_anthropic_client(self.settings)
        return self._client

    async def _transport(self, system: str, user: str) -> Completion | BackendFailure:
        try:
            response = await self.client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_output_tokens,
                temperature=self.settings.temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APITimeoutError as exc:
            return BackendFailure(kind="timeout", message=f"Anthropic request timed out: {exc}")
        except anthropic.APIConnectionError as exc:
            return BackendFailure(kind="connection", message=f"Cannot reach Anthropic: {exc}")
        except anthropic.APIStatusError as exc:
            return BackendFailure(
                kind="status",
                status=exc.status_code,
                message=f"Anthropic API error {exc.status_code}: {exc.message}",
            )

        # Only the first text block carries the answer
        text = next((block.text for block in response.content if block.type == "text"), "")
        tokens = None
        if response.usage is not None:
            tokens = response.usage.input_tokens + response.usage.output_tokens
        logger.info("[%s] completion received (%s tokens)", self.name, tokens)
        return Completion(text=text, tokens_used=tokens)
