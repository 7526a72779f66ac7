"""Retry/fallback orchestration across AI providers.

Two loops: the outer one walks the fallback order starting at the requested
provider, the inner one retries the current provider.

- Format errors retry the SAME provider with the verbose error as feedback
- Provider-down errors skip the remaining retries and move to the next provider
- Anything else counts as a provider error: it uses up a retry but adds no feedback

Every error is kept, so the final SelectionError carries the whole history.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from curator.agents.errors import (
    ErrorCode,
    ParseError,
    ProviderAttemptError,
    SelectionError,
    render_verbose,
)
from curator.agents.providers.base import FALLBACK_ORDER, ProviderAdapter, ProviderResult, SelectionRequest
from curator.agents.providers.registry import get_first_available_provider, get_provider

logger = logging.getLogger(__name__)

OnAttempt = Callable[[str, int], None]


@dataclass(frozen=True)
class SelectionOptions:
    max_retries: int = 3
    enable_fallback: bool = True
    default_provider: str = "cerebras-gpt"


def _provider_chain(start: str, enable_fallback: bool) -> list[str]:
    if not enable_fallback:
        return [start]
    if start not in FALLBACK_ORDER:
        return [start, *FALLBACK_ORDER]
    return list(FALLBACK_ORDER[FALLBACK_ORDER.index(start):])


async def select_bullets_with_ai(
    request: SelectionRequest,
    provider_name: str | None = None,
    options: SelectionOptions | None = None,
    provider_factory: Callable[[str], ProviderAdapter] = get_provider,
    on_attempt: OnAttempt | None = None,
) -> ProviderResult:
    """Get a validated scored-bullet set from the first provider that can produce one.

    Raises:
        SelectionError: when every provider and retry is exhausted.
    """
    options = options or SelectionOptions()
    start = provider_name or get_first_available_provider(
        preferred=options.default_provider,
        provider_factory=provider_factory,
    )
    if start is None:
        raise SelectionError(
            "No AI providers available",
            [ParseError(
                code=ErrorCode.PROVIDER_DOWN,
                message="All providers unavailable",
                help="Check API keys in environment variables",
            )],
            provider="none",
            attempts=0,
        )

    errors: list[ParseError] = []
    total_attempts = 0
    current = start

    for name in _provider_chain(start, options.enable_fallback):
        current = name
        provider = provider_factory(name)
        if not provider.is_available():
            logger.info("[%s] not available, skipping", name)
            errors.append(ParseError(
                code=ErrorCode.PROVIDER_DOWN,
                message=f"{name} is not configured",
                help="Check API keys in environment variables",
            ))
            continue

        feedback: str | None = None
        for attempt in range(1, options.max_retries + 1):
            total_attempts += 1
            if on_attempt is not None:
                on_attempt(name, attempt)
            logger.info("[%s] attempt %d/%d", name, attempt, options.max_retries)

            try:
                result = await provider.select(replace(request, retry_feedback=feedback))
            except ProviderAttemptError as exc:
                error = exc.error
            except Exception as exc:
                logger.exception("[%s] unexpected error on attempt %d", name, attempt)
                error = ParseError(code=ErrorCode.PROVIDER_ERROR, message=str(exc) or type(exc).__name__)
            else:
                result.attempts = attempt
                logger.info(
                    "[%s] succeeded on attempt %d with %d scored bullets",
                    name, attempt, len(result.bullets),
                )
                return result

            errors.append(error)
            if error.is_provider_down:
                logger.warning("[%s] provider down: %s", name, error.message)
                break
            if error.is_format_error:
                logger.warning("[%s] format error %s: %s", name, error.code.name, error.message)
                feedback = render_verbose(error)
            else:
                logger.warning("[%s] provider error: %s", name, error.message)
        else:
            logger.warning("[%s] exhausted %d retries", name, options.max_retries)

        if options.enable_fallback:
            logger.info("[%s] falling back to next provider", name)

    raise SelectionError(
        f"AI selection failed after {total_attempts} attempt(s)",
        errors,
        provider=current,
        attempts=total_attempts,
    )
