"""Prompt builder: renders the job description and bullet inventory for the LLM judge.

The model is asked to SCORE bullets, not to pick the final set: it is told to
return more candidates than will be used (``get_min_bullets``) so the
diversity selector, which runs afterwards, can satisfy its caps without a
second model call.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass

from curator.schemas.compendium import Bullet, Compendium
from curator.schemas.pydantic import SelectionConfig
from curator.utils import format_date_range

logger = logging.getLogger(__name__)

MIN_REQUESTED_BULLETS = 30
BULLET_BUFFER = 10
DEFAULT_CONTEXT_LIMIT = 128_000
COMPENDIUM_CONTEXT_SHARE = 0.6
CONTEXT_WARNING_RATIO = 0.8
CHARS_PER_TOKEN = 4


SYSTEM_PROMPT = """\
# Resume Bullet Scoring Expert

You are an expert resume curator. Your task is to SCORE bullet points from a candidate's experience by their relevance to a job description.

## Analysis Process

1. Parse the job description for required skills and technologies, expected seniority, industry and domain, key responsibilities, and leadership requirements.
2. Score each bullet against those requirements: direct skill matches, transferable experience, quantified impact, leadership signals. Favor recent experience where relevant.

## Scoring Guidelines

Use the full 0.0-1.0 range:
- 0.9-1.0: Direct skill match with quantifiable impact relevant to the role
- 0.7-0.9: Strong relevance to job requirements
- 0.5-0.7: Moderate relevance, transferable skills
- 0.3-0.5: Weak relevance but shows breadth or depth
- 0.0-0.3: Minimal relevance to this role

Score as many relevant bullets as possible. The server applies diversity constraints and picks the final set.

## Output Format

Respond with a single JSON object and nothing else:

{
  "bullets": [
    {"id": "bullet-id-1", "score": 0.95},
    {"id": "bullet-id-2", "score": 0.88}
  ],
  "reasoning": "1-3 sentences on what you weighted highly and why",
  "job_title": "Senior Site Reliability Engineer",
  "salary": {"min": 180000, "max": 220000, "currency": "USD", "period": "annual"}
}

- bullets[].id must match a compendium id exactly; each id at most once.
- bullets[].score must be a number between 0.0 and 1.0.
- job_title: the exact title if clearly stated, otherwise null.
- salary: only if mentioned. Convert "120k" to 120000. Use ISO 4217 currency codes (USD, GBP, EUR, not symbols). period is one of annual, monthly, hourly, daily, weekly. Otherwise null.

## Critical Rules

1. Score at least the minimum number of bullets given in the task
2. Only use bullet ids from the provided compendium
3. All scores between 0.0 and 1.0
4. Return JSON only: no markdown, no text outside the object
"""

_USER_PROMPT_TEMPLATE = """\
{retry_block}## YOUR TASK

Score the most relevant bullets from the candidate's experience for this job.

**Requirements:**
- Score AT LEAST {min_bullets} bullets (more is better)
- Use scores 0.0-1.0 (1.0 = perfect match, 0.0 = irrelevant)
- Only use IDs exactly as shown in brackets [like-this]

The server will apply diversity constraints and select the final {max_bullets}. Your job is to score relevance accurately.

---

## Job Description

{job_description}

---

## Available Bullets

Each bullet shows: [ID] Description, then tags and priority

{bullets}

---

## Response Format

Return ONLY a JSON object:
{{
  "bullets": [{{"id": "bullet-id", "score": 0.95}}, ... at least {min_bullets} scored bullets],
  "reasoning": "Brief explanation of scoring criteria",
  "job_title": "Title from the job description" or null,
  "salary": {{"min": N, "max": N, "currency": "USD", "period": "annual"}} or null
}}

NO markdown, NO code blocks, NO extra text."""

_RETRY_BLOCK_TEMPLATE = """\
## PREVIOUS RESPONSE HAD ERRORS

{feedback}

Please fix the issues above. Score more bullets if needed, and ensure all IDs exist.

---

"""

_LISTED_ID_RE = re.compile(r"^- \[([^\]\n]+)\] ", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")


def get_min_bullets(
    max_bullets: int,
    floor: int = MIN_REQUESTED_BULLETS,
    buffer: int = BULLET_BUFFER,
) -> int:
    """How many scored bullets to ask for: always over-request past the final size."""
    return max(floor, max_bullets + buffer)


def system_prompt_hash() -> str:
    """Short fingerprint of the system prompt, reported so prompt versions are traceable."""
    return hashlib.sha256(SYSTEM_PROMPT.encode("utf-8")).hexdigest()[:8]


def _format_bullet(bullet: Bullet) -> str:
    # One line per bullet, so a description can never start a new "- [id]" entry
    description = _WHITESPACE_RE.sub(" ", bullet.description).strip()
    return f"- [{bullet.id}] {description}\n  tags: {', '.join(bullet.tags)} | priority: {bullet.priority}/10"


def format_bullets_for_prompt(compendium: Compendium) -> str:
    """Render the whole inventory grouped by organization and role.

    ::

        ### Acme Corp (2020–2023)
        Location: San Francisco, CA

        #### Senior Engineer (2021–2023)

        - [acme-sre-migration] Led migration of 40 services to Kubernetes
          tags: kubernetes, leadership | priority: 9/10
    """
    lines: list[str] = []
    for organization in compendium.experience:
        lines.append(
            f"### {organization.display_name} "
            f"({format_date_range(organization.date_start, organization.date_end)})"
        )
        if organization.location:
            lines.append(f"Location: {organization.location}")
        lines.append("")
        for role in organization.children:
            lines.append(f"#### {role.name} ({format_date_range(role.date_start, role.date_end)})")
            lines.append("")
            lines.extend(_format_bullet(bullet) for bullet in role.children)
            lines.append("")
    return "\n".join(lines)


def format_retry_feedback(feedback: str) -> str:
    return _RETRY_BLOCK_TEMPLATE.format(feedback=feedback)


def build_user_prompt(
    job_description: str,
    compendium: Compendium,
    config: SelectionConfig,
    retry_feedback: str | None = None,
    min_requested: int = MIN_REQUESTED_BULLETS,
    bullet_buffer: int = BULLET_BUFFER,
) -> str:
    """Build the user message. Deterministic for identical inputs.

    The requested count never drops below ``config.min_bullets``, the floor
    the parser will enforce on the response.
    """
    floor = max(min_requested, config.min_bullets or 0)
    return _USER_PROMPT_TEMPLATE.format(
        retry_block=format_retry_feedback(retry_feedback) if retry_feedback else "",
        min_bullets=get_min_bullets(config.max_bullets, floor, bullet_buffer),
        max_bullets=config.max_bullets,
        job_description=job_description.strip(),
        bullets=format_bullets_for_prompt(compendium),
    )


def extract_listed_ids(rendered: str) -> list[str]:
    """Recover bullet ids from a rendered listing, in listing order."""
    return _LISTED_ID_RE.findall(rendered)


# ── Sizing ────────────────────────────────────────────────────────────


def estimate_token_count(text: str, chars_per_token: int = CHARS_PER_TOKEN) -> int:
    """Rough estimate: ~4 characters per token for English text."""
    return math.ceil(len(text) / chars_per_token)


@dataclass(frozen=True)
class SizeCheck:
    ok: bool
    estimated_tokens: int
    warning: str | None = None


def check_compendium_size(
    compendium: Compendium,
    context_limit: int = DEFAULT_CONTEXT_LIMIT,
    context_share: float = COMPENDIUM_CONTEXT_SHARE,
    warning_ratio: float = CONTEXT_WARNING_RATIO,
    chars_per_token: int = CHARS_PER_TOKEN,
) -> SizeCheck:
    """Check the rendered inventory against a provider's context budget.

    The inventory may use at most *context_share* of the budget (60% by
    default); the rest is left for the system prompt, job description and
    response. Above *warning_ratio* of that ceiling the check still passes but
    carries a warning.
    """
    estimated = estimate_token_count(format_bullets_for_prompt(compendium), chars_per_token)
    safe_limit = context_limit * context_share

    if estimated > safe_limit:
        warning = f"Compendium too large: ~{estimated} tokens (limit: {math.floor(safe_limit)})"
        logger.warning(warning)
        return SizeCheck(ok=False, estimated_tokens=estimated, warning=warning)

    if estimated > safe_limit * warning_ratio:
        warning = f"Compendium approaching limit: ~{estimated} tokens"
        logger.warning(warning)
        return SizeCheck(ok=True, estimated_tokens=estimated, warning=warning)

    return SizeCheck(ok=True, estimated_tokens=estimated)
