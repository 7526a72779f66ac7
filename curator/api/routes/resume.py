"""Resume bullet selection routes — heuristic and AI-judged."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from curator.agents.errors import SelectionError
from curator.agents.graph import run_selection
from curator.agents.providers.base import ProviderAdapter
from curator.agents.providers.registry import list_provider_info
from curator.api.dependencies import compendium_dependency, provider_factory_dependency, settings_dependency
from curator.config import Settings
from curator.exceptions import NotFoundError, UnprocessableError
from curator.schemas.compendium import Compendium
from curator.schemas.pydantic import (
    AISelectRequest,
    HeuristicSelectRequest,
    ProviderInfo,
    SelectionConfig,
    SelectionConfigOverrides,
    SelectionOutcome,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/resume", tags=["resume"])

_STEP_LABELS = {
    "indexing": "Indexing experience...",
    "scoring": "Scoring bullets...",
    "applying_constraints": "Applying diversity constraints...",
    "ordering": "Ordering for presentation...",
}


def _resolve_config(settings: Settings, overrides: SelectionConfigOverrides | None) -> SelectionConfig:
    base = SelectionConfig.from_settings(settings)
    if overrides is None:
        return base
    try:
        return overrides.apply_to(base)
    except ValueError as exc:
        raise UnprocessableError(f"Invalid selection config: {exc}") from exc


def _check_job_description(body: AISelectRequest, settings: Settings) -> str:
    job_description = body.job_description.strip()
    if len(job_description) < settings.min_job_description_chars:
        raise UnprocessableError(
            f"Job description must be at least {settings.min_job_description_chars} characters"
        )
    return job_description


@router.get("/providers", response_model=list[ProviderInfo])
async def list_providers(settings: Settings = Depends(settings_dependency)):
    """Every AI provider with its cost tier and whether credentials are configured."""
    return list_provider_info(settings)


@router.post("/select", response_model=SelectionOutcome)
async def select_heuristic(
    body: HeuristicSelectRequest,
    compendium: Compendium = Depends(compendium_dependency),
    settings: Settings = Depends(settings_dependency),
):
    """Select bullets by scoring them against a stored role profile."""
    profile = compendium.find_role_profile(body.role_profile_id)
    if profile is None:
        raise NotFoundError(f"Role profile '{body.role_profile_id}' not found")

    return await run_selection(
        compendium,
        mode="heuristic",
        config=_resolve_config(settings, body.config),
        role_profile=profile,
        settings=settings,
    )


@router.post("/ai-select", response_model=SelectionOutcome)
async def select_with_ai(
    body: AISelectRequest,
    compendium: Compendium = Depends(compendium_dependency),
    settings: Settings = Depends(settings_dependency),
    provider_factory: Callable[[str], ProviderAdapter] = Depends(provider_factory_dependency),
):
    """Select bullets with an LLM judge. SelectionError is handled in main.py (502)."""
    job_description = _check_job_description(body, settings)
    return await run_selection(
        compendium,
        mode="ai",
        config=_resolve_config(settings, body.config),
        job_description=job_description,
        provider=body.provider,
        settings=settings,
        provider_factory=provider_factory,
    )


@router.post("/ai-select/stream")
async def stream_select_with_ai(
    body: AISelectRequest,
    compendium: Compendium = Depends(compendium_dependency),
    settings: Settings = Depends(settings_dependency),
    provider_factory: Callable[[str], ProviderAdapter] = Depends(provider_factory_dependency),
):
    """Same as /ai-select, streamed as SSE step events followed by the outcome."""
    job_description = _check_job_description(body, settings)
    config = _resolve_config(settings, body.config)

    async def event_generator():
        step_queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue()

        async def on_step(step_name: str, status: str = "running"):
            await step_queue.put((step_name, status))

        selection_task = asyncio.create_task(
            run_selection(
                compendium,
                mode="ai",
                config=config,
                job_description=job_description,
                provider=body.provider,
                settings=settings,
                provider_factory=provider_factory,
                on_step=on_step,
            )
        )

        try:
            completed_steps = 0
            while not selection_task.done() or not step_queue.empty():
                try:
                    step, status = await asyncio.wait_for(step_queue.get(), timeout=0.5)
                except asyncio.TimeoutError:
                    continue
                if status == "done":
                    completed_steps += 1
                yield {
                    "event": "step",
                    "data": json.dumps({
                        "step": step,
                        "status": status,
                        "label": _STEP_LABELS.get(step, step),
                        "progress": completed_steps,
                        "total": len(_STEP_LABELS),
                    }),
                }

            outcome = await selection_task
            yield {"event": "complete", "data": outcome.model_dump_json()}

        except SelectionError as exc:
            logger.error("AI selection failed:\n%s", exc.verbose_log())
            yield {
                "event": "error",
                "data": json.dumps({
                    "error": "AI selection failed",
                    "user_message": exc.user_message(),
                    "provider": exc.provider,
                    "attempts": exc.attempts,
                }),
            }

        except UnprocessableError as exc:
            yield {"event": "error", "data": json.dumps({"error": exc.detail})}

        except asyncio.CancelledError:
            # Client went away; partial output is discarded
            selection_task.cancel()
            raise

        except Exception:
            selection_task.cancel()
            logger.exception("Selection raised unexpectedly")
            yield {"event": "error", "data": json.dumps({"error": "An unexpected error occurred. Please try again."})}

    return EventSourceResponse(event_generator())
