"""Output parser: turns raw model text into a validated ParsedSelection.

Checks run in a fixed order and the first failure wins, so the same bad
response always produces the same error code. Identifiers, counts and
reasoning are hard requirements; salary is optional enrichment and only ever
downgrades to ``None`` with a warning.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, get_args

from curator.agents.errors import ErrorCode, ParseError, Span
from curator.schemas.pydantic import ParsedSelection, SalaryInfo, SalaryPeriod, ScoredBullet, SelectionConfig
from curator.services.hierarchy import Placement
from curator.utils import truncate

logger = logging.getLogger(__name__)

DEFAULT_MIN_BULLETS = 30
_SAMPLE_SIZE = 5
_EXCERPT_LIMIT = 60
_SALARY_PERIODS = frozenset(get_args(SalaryPeriod))

_FENCED_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BULLETS_OBJECT_RE = re.compile(r'\{[\s\S]*"bullets"[\s\S]*\}')
_LEGACY_OBJECT_RE = re.compile(r'\{[\s\S]*"bullet_ids"[\s\S]*\}')
_ANY_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParseResult:
    ok: bool
    data: ParsedSelection | None = None
    error: ParseError | None = None

    @classmethod
    def success(cls, data: ParsedSelection) -> "ParseResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: ParseError) -> "ParseResult":
        return cls(ok=False, error=error)


def extract_json(raw: str) -> str | None:
    """Find the JSON object in *raw*.

    Tries, in order: a fenced code block, an object containing ``"bullets"``,
    an object containing the older ``"bullet_ids"`` key, then any ``{...}``.
    """
    fenced = _FENCED_RE.search(raw)
    if fenced and fenced.group(1).strip().startswith("{"):
        return fenced.group(1).strip()
    for pattern in (_BULLETS_OBJECT_RE, _LEGACY_OBJECT_RE, _ANY_OBJECT_RE):
        match = pattern.search(raw)
        if match:
            return match.group(0)
    return None


def required_bullet_count(config: SelectionConfig | None, default: int = DEFAULT_MIN_BULLETS) -> int:
    """Minimum scored bullets a response must carry: the configured floor, else *default*."""
    if config is not None and config.min_bullets is not None:
        return config.min_bullets
    return default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_salary(value: Any) -> tuple[SalaryInfo | None, str | None]:
    """Return ``(salary, problem)``. Exactly one of them is None unless *value* is null."""
    if value is None:
        return None, None
    if not isinstance(value, dict):
        return None, "salary must be an object"
    currency = value.get("currency")
    if not isinstance(currency, str) or not currency.strip():
        return None, "salary.currency must be a non-empty string"
    period = value.get("period")
    if period not in _SALARY_PERIODS:
        return None, f"salary.period must be one of {', '.join(sorted(_SALARY_PERIODS))}"
    for bound in ("min", "max"):
        if value.get(bound) is not None and not _is_number(value[bound]):
            return None, f"salary.{bound} must be a number"
    return SalaryInfo(
        min=value.get("min"),
        max=value.get("max"),
        currency=currency.strip(),
        period=period,
    ), None


# ── Individual checks ──────────────────────────────────────────────────


def _check_ids_are_strings(entries: list[Any]) -> ParseError | None:
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            return ParseError(
                code=ErrorCode.INVALID_BULLET_ID,
                message=f'Bullet at index {position} missing valid "id" string',
                help='Each bullet must be an object like {"id": "bullet-id", "score": 0.85}.',
            )
    return None


def _check_unknown_ids(ids: list[str], valid_ids: frozenset[str] | set[str]) -> ParseError | None:
    unknown = [i for i in ids if i not in valid_ids]
    if not unknown:
        return None
    sample = sorted(valid_ids)[:_SAMPLE_SIZE]
    return ParseError(
        code=ErrorCode.INVALID_BULLET_ID,
        message=f"{len(unknown)} invalid bullet ID(s) found",
        help=(
            f"These IDs do not exist in the compendium: {', '.join(dict.fromkeys(unknown))}\n"
            f"Only use IDs exactly as listed in brackets, for example: {', '.join(sample)}"
        ),
    )


def _check_duplicates(ids: list[str]) -> ParseError | None:
    seen: set[str] = set()
    repeated = []
    for bullet_id in ids:
        if bullet_id in seen:
            repeated.append(bullet_id)
        seen.add(bullet_id)
    if not repeated:
        return None
    return ParseError(
        code=ErrorCode.DUPLICATE_BULLET_ID,
        message=f"{len(repeated)} duplicate bullet ID(s)",
        help=f"Each bullet may be scored once. Repeated: {', '.join(dict.fromkeys(repeated))}",
    )


def _check_scores(entries: list[dict[str, Any]]) -> ParseError | None:
    for entry in entries:
        score = entry.get("score")
        if not _is_number(score) or not 0.0 <= score <= 1.0:
            return ParseError(
                code=ErrorCode.INVALID_SCORE,
                message=f'Bullet "{entry["id"]}" has invalid score',
                help=f"Scores must be numbers between 0.0 and 1.0, got {score!r}.",
            )
    return None


def _check_diversity(
    bullets: list[ScoredBullet],
    hierarchy: dict[str, Placement],
    config: SelectionConfig,
) -> ParseError | None:
    """Check the caps over the candidates the selector would look at first."""
    top = sorted(bullets, key=lambda b: b.score, reverse=True)[: config.max_bullets]
    organization_counts: Counter[str] = Counter()
    role_counts: Counter[tuple[str, str]] = Counter()
    for bullet in top:
        placement = hierarchy[bullet.id]
        organization_counts[placement.organization_id] += 1
        role_counts[(placement.organization_id, placement.role_id)] += 1

    if config.max_per_role is not None:
        crowded = [key for key, count in role_counts.items() if count > config.max_per_role]
        if crowded:
            organization_id, role_id = crowded[0]
            return ParseError(
                code=ErrorCode.DIVERSITY_VIOLATION,
                message=f'Too many top bullets from position "{role_id}" at "{organization_id}"',
                help=(
                    f"At most {config.max_per_role} of your top {config.max_bullets} bullets may come "
                    "from one position. Score bullets from other positions higher."
                ),
            )
    if config.max_per_organization is not None:
        crowded_orgs = [key for key, count in organization_counts.items() if count > config.max_per_organization]
        if crowded_orgs:
            return ParseError(
                code=ErrorCode.DIVERSITY_VIOLATION,
                message=f'Too many top bullets from company "{crowded_orgs[0]}"',
                help=(
                    f"At most {config.max_per_organization} of your top {config.max_bullets} bullets may "
                    "come from one organization. Score bullets from other organizations higher."
                ),
            )
    return None


# ── Entry point ────────────────────────────────────────────────────────


def parse_ai_output(
    raw: str,
    valid_ids: frozenset[str] | set[str],
    hierarchy: dict[str, Placement],
    config: SelectionConfig | None = None,
) -> ParseResult:
    """Validate *raw* model output. Never raises for bad model output."""
    extracted = extract_json(raw)
    if extracted is None:
        return ParseResult.failure(ParseError(
            code=ErrorCode.NO_JSON_FOUND,
            message="No JSON object found in AI response",
            help="Respond with a single JSON object only, with no surrounding text or markdown.",
            span=Span(0, len(raw), truncate(raw, _EXCERPT_LIMIT)),
        ))

    try:
        payload = json.loads(extracted)
    except json.JSONDecodeError as exc:
        return ParseResult.failure(ParseError(
            code=ErrorCode.INVALID_JSON,
            message=f"JSON parse error: {exc.msg}",
            help="The response must be valid JSON: double-quoted keys and strings, no trailing commas.",
            span=Span(0, len(extracted), extracted[:_EXCERPT_LIMIT]),
        ))

    entries = payload.get("bullets") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        return ParseResult.failure(ParseError(
            code=ErrorCode.MISSING_BULLET_IDS,
            message='Response missing "bullets" array',
            help='Include a "bullets" array of {"id", "score"} objects.',
        ))

    error = _check_ids_are_strings(entries)
    if error:
        return ParseResult.failure(error)

    required = required_bullet_count(config)
    if len(entries) < required:
        return ParseResult.failure(ParseError(
            code=ErrorCode.WRONG_BULLET_COUNT,
            message=f"Expected at least {required} bullets, got {len(entries)}",
            help=f"The AI must score at least {required} bullets to give the server selection options.",
        ))

    ids = [entry["id"] for entry in entries]
    error = _check_unknown_ids(ids, valid_ids) or _check_duplicates(ids) or _check_scores(entries)
    if error:
        return ParseResult.failure(error)

    bullets = [ScoredBullet(id=entry["id"], score=entry["score"]) for entry in entries]

    if config is not None and config.enforce_diversity:
        error = _check_diversity(bullets, hierarchy, config)
        if error:
            return ParseResult.failure(error)

    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        return ParseResult.failure(ParseError(
            code=ErrorCode.MISSING_REASONING,
            message='Response missing "reasoning" field',
            help='Add a "reasoning" string of 1-3 sentences explaining the scoring.',
        ))

    warnings: list[str] = []
    salary, problem = validate_salary(payload.get("salary"))
    if problem:
        logger.warning("Ignoring invalid salary in AI response: %s", problem)
        warnings.append(f"Salary ignored: {problem}")

    job_title = payload.get("job_title")
    if not isinstance(job_title, str) or not job_title.strip():
        job_title = None

    return ParseResult.success(ParsedSelection(
        bullets=bullets,
        reasoning=reasoning.strip(),
        job_title=job_title.strip() if job_title else None,
        salary=salary,
        warnings=warnings,
    ))
