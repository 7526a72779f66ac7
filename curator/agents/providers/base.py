"""Provider adapter contract, model table, and failure classification.

An adapter makes exactly one backend call per ``select()``: render prompts,
call the transport under a timeout, parse the completion. It never retries;
retry and fallback belong to the orchestrator.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Literal

from curator.agents.errors import ErrorCode, ParseError, ProviderAttemptError
from curator.agents.output_parser import parse_ai_output
from curator.agents.prompts import SYSTEM_PROMPT, build_user_prompt
from curator.config import Settings
from curator.schemas.compendium import Compendium
from curator.schemas.pydantic import ProviderName, SalaryInfo, ScoredBullet, SelectionConfig
from curator.services.hierarchy import build_hierarchy_index
from curator.utils import truncate

logger = logging.getLogger(__name__)

# HTTP statuses that mean "this backend is unusable right now"
DOWN_STATUSES = frozenset({401, 403, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class ModelConfig:
    name: ProviderName
    provider: Literal["cerebras", "anthropic"]
    model: str
    label: str
    cost: Literal["free", "paid"]
    context_window: int
    max_output_tokens: int


AI_MODELS: dict[str, ModelConfig] = {
    "cerebras-gpt": ModelConfig(
        name="cerebras-gpt", provider="cerebras", model="gpt-oss-120b",
        label="GPT OSS 120B (Fast)", cost="free", context_window=128_000, max_output_tokens=4096,
    ),
    "cerebras-llama": ModelConfig(
        name="cerebras-llama", provider="cerebras", model="llama-3.3-70b",
        label="Llama 3.3 70B", cost="free", context_window=128_000, max_output_tokens=4096,
    ),
    "claude-sonnet": ModelConfig(
        name="claude-sonnet", provider="anthropic", model="claude-sonnet-4-20250514",
        label="Claude Sonnet 4", cost="paid", context_window=200_000, max_output_tokens=8192,
    ),
    "claude-haiku": ModelConfig(
        name="claude-haiku", provider="anthropic", model="claude-3-5-haiku-20241022",
        label="Claude Haiku 3.5", cost="paid", context_window=200_000, max_output_tokens=8192,
    ),
}

# Free and fast first, then alternate backends so one outage never blocks two steps in a row
FALLBACK_ORDER: tuple[str, ...] = ("cerebras-gpt", "claude-haiku", "cerebras-llama", "claude-sonnet")


def get_next_fallback(name: str) -> str | None:
    """The provider after *name* in fallback order, or None at the end (or for unknown names)."""
    if name not in FALLBACK_ORDER:
        return None
    position = FALLBACK_ORDER.index(name)
    return FALLBACK_ORDER[position + 1] if position + 1 < len(FALLBACK_ORDER) else None


# ── Transport results ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Completion:
    text: str
    tokens_used: int | None = None


@dataclass(frozen=True)
class BackendFailure:
    """A backend call that did not produce a completion."""

    kind: Literal["status", "connection", "timeout", "credentials", "unknown"]
    message: str
    status: int | None = None


def classify_failure(failure: BackendFailure) -> ParseError:
    """Map a backend failure onto the shared taxonomy."""
    is_down = (
        failure.kind in ("connection", "timeout", "credentials")
        or (failure.kind == "status" and failure.status in DOWN_STATUSES)
    )
    if is_down:
        return ParseError(
            code=ErrorCode.PROVIDER_DOWN,
            message=failure.message,
            help="The provider is unavailable. Switching to the next provider.",
        )
    return ParseError(code=ErrorCode.PROVIDER_ERROR, message=failure.message)


# ── Adapter contract ───────────────────────────────────────────────────


@dataclass
class SelectionRequest:
    job_description: str
    compendium: Compendium
    config: SelectionConfig
    retry_feedback: str | None = None


@dataclass
class ProviderResult:
    bullets: list[ScoredBullet]
    reasoning: str
    provider: str
    job_title: str | None = None
    salary: SalaryInfo | None = None
    warnings: list[str] = field(default_factory=list)
    tokens_used: int | None = None
    attempts: int = 1


class ProviderAdapter(abc.ABC):
    """One LLM backend. Subclasses implement ``is_available`` and ``_transport``."""

    def __init__(self, config: ModelConfig, settings: Settings) -> None:
        self.config = config
        self.settings = settings

    @property
    def name(self) -> str:
        return self.config.name

    @abc.abstractmethod
    def is_available(self) -> bool:
        """True when the credential this backend needs is configured."""

    @abc.abstractmethod
    async def _transport(self, system: str, user: str) -> Completion | BackendFailure:
        """Issue one chat completion. Must return failures, not raise them."""

    async def select(self, request: SelectionRequest) -> ProviderResult:
        """Run one attempt.

        Raises:
            ProviderAttemptError: on any backend or parse failure.
        """
        if not self.is_available():
            raise ProviderAttemptError(
                classify_failure(BackendFailure(kind="credentials", message=f"{self.name} API key not configured")),
                self.name,
            )

        user_prompt = build_user_prompt(
            request.job_description,
            request.compendium,
            request.config,
            request.retry_feedback,
            min_requested=self.settings.min_bullets,
            bullet_buffer=self.settings.bullet_buffer,
        )
        try:
            outcome = await asyncio.wait_for(
                self._transport(SYSTEM_PROMPT, user_prompt),
                timeout=self.settings.provider_timeout_s,
            )
        except asyncio.TimeoutError:
            outcome = BackendFailure(
                kind="timeout",
                message=f"{self.name} timed out after {self.settings.provider_timeout_s:g}s",
            )

        if isinstance(outcome, BackendFailure):
            logger.warning("[%s] backend failure (%s): %s", self.name, outcome.kind, outcome.message)
            raise ProviderAttemptError(classify_failure(outcome), self.name)

        if not outcome.text.strip():
            raise ProviderAttemptError(
                ParseError(
                    code=ErrorCode.NO_JSON_FOUND,
                    message="Empty response from AI",
                    help="Respond with a single JSON object.",
                ),
                self.name,
            )

        logger.debug("[%s] raw response: %s", self.name, truncate(outcome.text, 500))
        index = build_hierarchy_index(request.compendium)
        parsed = parse_ai_output(outcome.text, index.valid_ids, index.placements, request.config)
        if not parsed.ok:
            raise ProviderAttemptError(parsed.error, self.name)

        data = parsed.data
        return ProviderResult(
            bullets=data.bullets,
            reasoning=data.reasoning,
            provider=self.name,
            job_title=data.job_title,
            salary=data.salary,
            warnings=list(data.warnings),
            tokens_used=outcome.tokens_used,
        )
