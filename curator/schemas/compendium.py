"""Pydantic v2 models for the experience compendium (Organization → Role → Bullet).

The compendium JSON uses camelCase keys (``dateStart``, ``children``,
``roleProfiles``); models accept both that and snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Shared config: camelCase on the wire, frozen once loaded
_COMPENDIUM_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


class Bullet(BaseModel):
    """An atomic achievement statement, the unit of selection."""

    model_config = _COMPENDIUM_CONFIG

    id: str
    description: str
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(default=5, ge=1, le=10)
    name: str | None = None


class Role(BaseModel):
    """A position held at an organization."""

    model_config = _COMPENDIUM_CONFIG

    id: str
    name: str
    date_start: str
    date_end: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(default=5, ge=1, le=10)
    children: list[Bullet] = Field(default_factory=list)

    @property
    def description_bullet_id(self) -> str:
        return f"{self.id}-description"

    def description_as_bullet(self) -> Bullet | None:
        """Promote the role description to a synthetic bullet, if there is one."""
        if not self.description:
            return None
        return Bullet(
            id=self.description_bullet_id,
            description=self.description,
            tags=list(self.tags),
            priority=self.priority,
        )


class Organization(BaseModel):
    """An employer or engagement; ``children`` are its roles."""

    model_config = _COMPENDIUM_CONFIG

    id: str
    name: str | None = None
    location: str | None = None
    date_start: str
    date_end: str | None = None
    description: str | None = None
    link: str | None = None
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(default=5, ge=1, le=10)
    children: list[Role] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ScoringWeights(BaseModel):
    model_config = _COMPENDIUM_CONFIG

    tag_relevance: float = 0.6
    priority: float = 0.4


class RoleProfile(BaseModel):
    """A target role type used by the heuristic scorer."""

    model_config = _COMPENDIUM_CONFIG

    id: str
    name: str
    description: str | None = None
    tag_weights: dict[str, float] = Field(default_factory=dict)
    scoring_weights: ScoringWeights = Field(default_factory=ScoringWeights)


class Compendium(BaseModel):
    """Root of the dataset. ``experience`` is ordered most recent first."""

    model_config = _COMPENDIUM_CONFIG

    experience: list[Organization] = Field(default_factory=list)
    role_profiles: list[RoleProfile] = Field(default_factory=list)

    @field_validator("role_profiles", mode="before")
    @classmethod
    def _null_profiles(cls, value):
        return value if value is not None else []

    def find_role_profile(self, profile_id: str) -> RoleProfile | None:
        return next((p for p in self.role_profiles if p.id == profile_id), None)
