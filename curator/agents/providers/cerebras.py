"""Cerebras adapter via its OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from curator.agents.providers.base import BackendFailure, Completion, ModelConfig, ProviderAdapter
from curator.clients import build_cerebras_client
from curator.config import Settings

logger = logging.getLogger(__name__)


class CerebrasProvider(ProviderAdapter):
    def __init__(
        self,
        config: ModelConfig,
        settings: Settings,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(config, settings)
        self._client = client

    def is_available(self) -> bool:
        return bool(self.settings.cerebras_api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = build_cerebras_client(self.settings)
        return self._client

    async def _transport(self, system: str, user: str) -> Completion | BackendFailure:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.settings.temperature,
                max_tokens=self.config.max_output_tokens,
            )
        except openai.APITimeoutError as exc:
            return BackendFailure(kind="timeout", message=f"Cerebras request timed out: {exc}")
        except openai.APIConnectionError as exc:
            return BackendFailure(kind="connection", message=f"Cannot reach Cerebras: {exc}")
        except openai.APIStatusError as exc:
            return BackendFailure(
                kind="status",
                status=exc.status_code,
                message=f"Cerebras API error {exc.status_code}: {exc.message}",
            )

        text = response.choices[0].message.content if response.choices else None
        tokens = response.usage.total_tokens if response.usage else None
        logger.info("[%s] completion received (%s tokens)", self.name, tokens)
        return Completion(text=text or "", tokens_used=tokens)
