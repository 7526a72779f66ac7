"""Heuristic bullet scoring against a role profile.

Hierarchical: organization × role × bullet, mirroring how a recruiter reads
a resume (company name, then job title, then bullets). Deterministic: the same
compendium and profile always produce the same scores in the same order.
"""

from __future__ import annotations

from curator.schemas.compendium import Bullet, Compendium, Organization, Role, RoleProfile
from curator.schemas.pydantic import ScoredBullet
from curator.services.hierarchy import iter_bullets


def tag_relevance(tags: list[str], tag_weights: dict[str, float]) -> float:
    """Average weight of the tags that appear in *tag_weights* (0.0 if none do)."""
    matched = [tag_weights[tag] for tag in tags if tag in tag_weights]
    if not matched:
        return 0.0
    return sum(matched) / len(matched)


def organization_multiplier(organization: Organization) -> float:
    """Map priority 1-10 onto 0.84-1.2."""
    return 0.8 + (organization.priority / 10) * 0.4


def role_multiplier(role: Role, tag_weights: dict[str, float]) -> float:
    priority_part = 0.8 + (role.priority / 10) * 0.4
    if not role.tags:
        return priority_part
    # 0.9-1.1 depending on how well the role itself matches the profile
    return priority_part * (0.9 + tag_relevance(role.tags, tag_weights) * 0.2)


def score_bullet(
    bullet: Bullet,
    role: Role,
    organization: Organization,
    profile: RoleProfile,
) -> float:
    weights = profile.scoring_weights
    base = (
        tag_relevance(bullet.tags, profile.tag_weights) * weights.tag_relevance
        + (bullet.priority / 10) * weights.priority
    )
    score = base * organization_multiplier(organization) * role_multiplier(role, profile.tag_weights)
    # Multipliers can push past 1.0; the selector contract is [0, 1]
    return round(min(max(score, 0.0), 1.0), 6)


def score_compendium(compendium: Compendium, profile: RoleProfile) -> list[ScoredBullet]:
    """Score every bullet (role descriptions included) in compendium order."""
    return [
        ScoredBullet(id=bullet.id, score=score_bullet(bullet, role, organization, profile))
        for organization, role, bullet in iter_bullets(compendium.experience, include_descriptions=True)
    ]
