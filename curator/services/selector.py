"""Diversity-constrained selection over scored bullets.

Takes a flat list of (bullet id, score) pairs, from either the heuristic scorer
or the LLM judge, and picks the final set:

1. Sort by score descending (stable: ties keep input order)
2. Greedily admit bullets under the total, per-organization and per-role caps
3. Drop organizations that end up below the per-organization floor

Presentation order (organizations by recency) is a separate pure step and
never changes which bullets were picked.
"""

from __future__ import annotations

import logging
from collections import Counter

from curator.schemas.compendium import Bullet, Compendium, Organization, Role
from curator.schemas.pydantic import ScoredBullet, SelectedBullet, SelectionConfig
from curator.services.hierarchy import HierarchyIndex

logger = logging.getLogger(__name__)


def rank_by_score(scored: list[ScoredBullet]) -> list[ScoredBullet]:
    """Score-descending order; Python's sort is stable so ties keep input order."""
    return sorted(scored, key=lambda b: b.score, reverse=True)


def apply_diversity_constraints(
    scored: list[ScoredBullet],
    index: HierarchyIndex,
    config: SelectionConfig,
) -> list[ScoredBullet]:
    """Pick the highest-scoring bullets that fit the caps in *config*.

    Raises:
        ValueError: if any scored id is not in *index*. Unknown ids are a
            caller bug (the output parser rejects them first) and are never
            dropped silently.
    """
    unknown = [b.id for b in scored if b.id not in index]
    if unknown:
        raise ValueError(f"{len(unknown)} scored bullet id(s) not in compendium: {', '.join(unknown[:5])}")

    selected: list[ScoredBullet] = []
    organization_counts: Counter[str] = Counter()
    # Role ids are only unique within an organization
    role_counts: Counter[tuple[str, str]] = Counter()

    for candidate in rank_by_score(scored):
        if len(selected) >= config.max_bullets:
            break

        placement = index.placement_of(candidate.id)
        role_key = (placement.organization_id, placement.role_id)

        if (
            config.max_per_organization is not None
            and organization_counts[placement.organization_id] >= config.max_per_organization
        ):
            continue
        if config.max_per_role is not None and role_counts[role_key] >= config.max_per_role:
            continue

        organization_counts[placement.organization_id] += 1
        role_counts[role_key] += 1
        selected.append(candidate)

    floor = config.min_per_organization
    if floor is not None and floor > 1:
        below = {org_id for org_id, count in organization_counts.items() if count < floor}
        if below:
            logger.info(
                "Dropping %d organization(s) below min_per_organization=%d: %s",
                len(below), floor, ", ".join(sorted(below)),
            )
            selected = [b for b in selected if index.placement_of(b.id).organization_id not in below]

    logger.info(
        "Selected %d of %d scored bullets (max=%d, per_org=%s, per_role=%s, min_per_org=%s)",
        len(selected), len(scored), config.max_bullets,
        config.max_per_organization, config.max_per_role, config.min_per_organization,
    )
    return selected


def _with_context(
    scored: ScoredBullet,
    organization: Organization,
    role: Role,
    bullet: Bullet,
) -> SelectedBullet:
    return SelectedBullet(
        bullet=bullet,
        score=scored.score,
        organization_id=organization.id,
        organization_name=organization.name,
        organization_description=organization.description,
        organization_link=organization.link,
        organization_location=organization.location,
        organization_date_start=organization.date_start,
        organization_date_end=organization.date_end,
        role_id=role.id,
        role_name=role.name,
        role_description=role.description,
        role_date_start=role.date_start,
        role_date_end=role.date_end,
    )


def attach_context(
    selected: list[ScoredBullet],
    lookup: dict[str, tuple[Organization, Role, Bullet]],
) -> list[SelectedBullet]:
    """Attach organization/role context to each selected bullet, preserving order."""
    return [_with_context(b, *lookup[b.id]) for b in selected]


def reorder_by_recency(
    selected: list[SelectedBullet],
    compendium: Compendium,
) -> list[SelectedBullet]:
    """Group bullets by organization in compendium (recency) order.

    Within an organization, bullets stay score-descending.
    """
    organization_order = {org.id: position for position, org in enumerate(compendium.experience)}
    by_organization: dict[str, list[SelectedBullet]] = {}
    for item in selected:
        by_organization.setdefault(item.organization_id, []).append(item)

    ordered_ids = sorted(
        by_organization,
        key=lambda org_id: organization_order.get(org_id, len(organization_order)),
    )
    result: list[SelectedBullet] = []
    for org_id in ordered_ids:
        result.extend(sorted(by_organization[org_id], key=lambda b: b.score, reverse=True))
    return result
