"""Pipeline definition — runs a selection request as sequential async steps.

index → score (heuristic or AI) → apply constraints → order for presentation
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from curator.agents.orchestrator import SelectionOptions, select_bullets_with_ai
from curator.agents.output_parser import required_bullet_count
from curator.agents.prompts import check_compendium_size, system_prompt_hash
from curator.agents.providers.base import AI_MODELS, ProviderAdapter, SelectionRequest
from curator.agents.providers.registry import get_provider
from curator.config import Settings, get_settings
from curator.exceptions import UnprocessableError
from curator.schemas.compendium import Compendium, RoleProfile
from curator.schemas.pydantic import (
    OutcomeMetadata,
    SalaryInfo,
    ScoredBullet,
    SelectedBullet,
    SelectionConfig,
    SelectionMode,
    SelectionOutcome,
)
from curator.services.hierarchy import HierarchyIndex, build_context_lookup, build_hierarchy_index
from curator.services.scoring import score_compendium
from curator.services.selector import apply_diversity_constraints, attach_context, reorder_by_recency

logger = logging.getLogger(__name__)

OnStep = Callable[[str, str], Awaitable[Any]]


class PipelineState(BaseModel):
    """State flowing through the selection pipeline."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    mode: SelectionMode
    compendium: Compendium
    config: SelectionConfig
    job_description: str | None = None
    role_profile: RoleProfile | None = None
    provider: str | None = None

    index: HierarchyIndex | None = None
    scored: list[ScoredBullet] = Field(default_factory=list)
    admitted: list[ScoredBullet] = Field(default_factory=list)
    selected: list[SelectedBullet] = Field(default_factory=list)

    reasoning: str | None = None
    job_title: str | None = None
    salary: SalaryInfo | None = None
    warnings: list[str] = Field(default_factory=list)
    provider_used: str | None = None
    tokens_used: int | None = None
    attempts: int = 0
    current_step: str = "pending"


async def index_compendium_node(state: PipelineState, deps: "PipelineDeps") -> PipelineState:
    """Node 1: Build the id → organization/role index."""
    state.current_step = "indexing"
    # Role descriptions are only candidates for the heuristic scorer; the AI never sees them
    state.index = build_hierarchy_index(state.compendium, include_descriptions=state.mode == "heuristic")
    logger.info("Indexed %d bullets across %d organizations", len(state.index), len(state.compendium.experience))
    return state


async def score_bullets_node(state: PipelineState, deps: "PipelineDeps") -> PipelineState:
    """Node 2: Score every candidate, by role profile or by LLM judge."""
    state.current_step = "scoring"
    if state.mode == "heuristic":
        if state.role_profile is None:
            raise UnprocessableError("Heuristic selection requires a role profile")
        state.scored = score_compendium(state.compendium, state.role_profile)
        state.reasoning = f"Heuristic scoring against role profile '{state.role_profile.name}'"
        return state

    if not state.job_description:
        raise UnprocessableError("AI selection requires a job description")

    required = required_bullet_count(state.config)
    if required > len(state.index):
        raise UnprocessableError(
            f"Minimum of {required} scored bullets exceeds the {len(state.index)} bullets in the compendium"
        )

    settings = deps.settings
    model = AI_MODELS.get(state.provider or "")
    size = check_compendium_size(
        state.compendium,
        context_limit=model.context_window if model else settings.context_limit_tokens,
        context_share=settings.compendium_context_share,
        warning_ratio=settings.context_warning_ratio,
        chars_per_token=settings.chars_per_token,
    )
    if not size.ok:
        raise UnprocessableError(size.warning)
    if size.warning:
        state.warnings.append(size.warning)

    result = await select_bullets_with_ai(
        SelectionRequest(
            job_description=state.job_description,
            compendium=state.compendium,
            config=state.config,
        ),
        provider_name=state.provider,
        options=deps.options,
        provider_factory=deps.provider_factory,
    )
    state.scored = result.bullets
    state.reasoning = result.reasoning
    state.job_title = result.job_title
    state.salary = result.salary
    state.warnings.extend(result.warnings)
    state.provider_used = result.provider
    state.tokens_used = result.tokens_used
    state.attempts = result.attempts
    return state


async def apply_constraints_node(state: PipelineState, deps: "PipelineDeps") -> PipelineState:
    """Node 3: Admit the best-scoring bullets under the diversity caps."""
    state.current_step = "applying_constraints"
    state.admitted = apply_diversity_constraints(state.scored, state.index, state.config)
    return state


async def order_for_presentation_node(state: PipelineState, deps: "PipelineDeps") -> PipelineState:
    """Node 4: Attach context and group by organization recency."""
    state.current_step = "ordering"
    lookup = build_context_lookup(state.compendium, include_descriptions=state.mode == "heuristic")
    state.selected = reorder_by_recency(attach_context(state.admitted, lookup), state.compendium)
    state.current_step = "complete"
    return state


class PipelineDeps:
    """Collaborators the nodes need beyond the state itself."""

    def __init__(
        self,
        settings: Settings,
        provider_factory: Callable[[str], ProviderAdapter] | None = None,
    ) -> None:
        self.settings = settings
        self.provider_factory = provider_factory or (lambda name: get_provider(name, settings))
        self.options = SelectionOptions(
            max_retries=settings.max_retries,
            enable_fallback=settings.enable_fallback,
            default_provider=settings.default_provider,
        )


async def run_selection(
    compendium: Compendium,
    mode: SelectionMode,
    config: SelectionConfig,
    job_description: str | None = None,
    role_profile: RoleProfile | None = None,
    provider: str | None = None,
    settings: Settings | None = None,
    provider_factory: Callable[[str], ProviderAdapter] | None = None,
    on_step: OnStep | None = None,
) -> SelectionOutcome:
    """Run the full selection pipeline.

    Args:
        compendium: Loaded experience data
        mode: "heuristic" (needs role_profile) or "ai" (needs job_description)
        config: Bounds on the final selection
        provider: Preferred AI provider; defaults to the first available one
        on_step: Optional async callback called with (step, status)

    Raises:
        SelectionError: when AI scoring exhausts every provider and retry.
        UnprocessableError: when the request cannot be run in the chosen mode.
    """
    settings = settings or get_settings()
    deps = PipelineDeps(settings, provider_factory)
    state = PipelineState(
        mode=mode,
        compendium=compendium,
        config=config,
        job_description=job_description,
        role_profile=role_profile,
        provider=provider,
    )

    steps = [
        ("indexing", index_compendium_node),
        ("scoring", score_bullets_node),
        ("applying_constraints", apply_constraints_node),
        ("ordering", order_for_presentation_node),
    ]

    started = time.monotonic()
    for step_name, node_fn in steps:
        if on_step:
            await on_step(step_name, "running")
        try:
            state = await node_fn(state, deps)
        except Exception:
            logger.warning("Selection step %s failed", step_name)
            if on_step:
                await on_step(step_name, "error")
            raise
        if on_step:
            await on_step(step_name, "done")

    return SelectionOutcome(
        mode=mode,
        selected=state.selected,
        count=len(state.selected),
        reasoning=state.reasoning,
        job_title=state.job_title,
        salary=state.salary,
        warnings=state.warnings,
        config=config,
        metadata=OutcomeMetadata(
            provider=state.provider_used,
            tokens_used=state.tokens_used,
            attempts=state.attempts,
            duration_ms=int((time.monotonic() - started) * 1000),
            prompt_hash=system_prompt_hash() if mode == "ai" else None,
        ),
    )
