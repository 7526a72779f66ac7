"""Pydantic v2 models for selection inputs, results, and request/response shapes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from curator.config import Settings
from curator.schemas.compendium import Bullet

ProviderName = Literal["cerebras-gpt", "cerebras-llama", "claude-sonnet", "claude-haiku"]
SalaryPeriod = Literal["annual", "monthly", "hourly", "daily", "weekly"]
SelectionMode = Literal["heuristic", "ai"]


# ── Selection config ───────────────────────────────────────────────────
class SelectionConfig(BaseModel):
    """Per-request bounds on the final selection. Never persisted."""

    max_bullets: int = Field(28, ge=1)
    max_per_organization: int | None = Field(6, ge=1)
    max_per_role: int | None = Field(4, ge=1)
    min_per_organization: int | None = Field(None, ge=1)
    # Floor the model output must reach; None means the default of 30
    min_bullets: int | None = Field(None, ge=1)
    # Also check per-organization/per-role caps while parsing model output
    enforce_diversity: bool = False

    @model_validator(mode="after")
    def _check_floor_below_cap(self) -> "SelectionConfig":
        if (
            self.min_per_organization is not None
            and self.max_per_organization is not None
            and self.min_per_organization > self.max_per_organization
        ):
            raise ValueError("min_per_organization cannot exceed max_per_organization")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "SelectionConfig":
        return cls(
            max_bullets=settings.max_bullets,
            max_per_organization=settings.max_per_organization,
            max_per_role=settings.max_per_role,
            min_per_organization=settings.min_per_organization,
            min_bullets=settings.min_bullets,
        )


class SelectionConfigOverrides(BaseModel):
    """Caller-supplied overrides; only fields actually sent replace the defaults."""

    max_bullets: int | None = Field(None, ge=1)
    max_per_organization: int | None = Field(None, ge=1)
    max_per_role: int | None = Field(None, ge=1)
    min_per_organization: int | None = Field(None, ge=1)
    min_bullets: int | None = Field(None, ge=1)
    enforce_diversity: bool | None = None

    def apply_to(self, base: SelectionConfig) -> SelectionConfig:
        merged = base.model_dump()
        merged.update(self.model_dump(exclude_unset=True))
        if merged.get("max_bullets") is None:
            merged["max_bullets"] = base.max_bullets
        if merged.get("enforce_diversity") is None:
            merged["enforce_diversity"] = base.enforce_diversity
        return SelectionConfig.model_validate(merged)


# ── Scores and model output ────────────────────────────────────────────
class ScoredBullet(BaseModel):
    id: str
    score: float = Field(ge=0.0, le=1.0)


class SalaryInfo(BaseModel):
    min: float | None = None
    max: float | None = None
    currency: str
    period: SalaryPeriod


class ParsedSelection(BaseModel):
    """Validated model output. Only built by the output parser."""

    bullets: list[ScoredBullet]
    reasoning: str
    job_title: str | None = None
    salary: SalaryInfo | None = None
    warnings: list[str] = Field(default_factory=list)


# ── Selection results ──────────────────────────────────────────────────
class SelectedBullet(BaseModel):
    """A selected bullet with the organization/role context needed to render it."""

    bullet: Bullet
    score: float
    organization_id: str
    organization_name: str | None = None
    organization_description: str | None = None
    organization_link: str | None = None
    organization_location: str | None = None
    organization_date_start: str
    organization_date_end: str | None = None
    role_id: str
    role_name: str
    role_description: str | None = None
    role_date_start: str
    role_date_end: str | None = None


class OutcomeMetadata(BaseModel):
    provider: str | None = None
    tokens_used: int | None = None
    attempts: int = 0
    duration_ms: int = 0
    prompt_hash: str | None = None


class SelectionOutcome(BaseModel):
    mode: SelectionMode
    selected: list[SelectedBullet] = Field(default_factory=list)
    count: int = 0
    reasoning: str | None = None
    job_title: str | None = None
    salary: SalaryInfo | None = None
    warnings: list[str] = Field(default_factory=list)
    config: SelectionConfig
    metadata: OutcomeMetadata = Field(default_factory=OutcomeMetadata)


# ── HTTP request/response shapes ───────────────────────────────────────
class HeuristicSelectRequest(BaseModel):
    role_profile_id: str = Field(min_length=1, max_length=200)
    config: SelectionConfigOverrides | None = None


class AISelectRequest(BaseModel):
    job_description: str = Field(min_length=1, max_length=50_000)
    provider: ProviderName | None = None
    config: SelectionConfigOverrides | None = None


class ProviderInfo(BaseModel):
    name: ProviderName
    label: str
    model: str
    cost: Literal["free", "paid"]
    available: bool


class SelectionFailureResponse(BaseModel):
    error: str = "AI selection failed"
    user_message: str
    provider: str
    attempts: int
