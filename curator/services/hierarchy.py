"""Hierarchy indexer — flattens Organization → Role → Bullet into id lookups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from curator.schemas.compendium import Bullet, Compendium, Organization, Role


@dataclass(frozen=True)
class Placement:
    organization_id: str
    role_id: str


@dataclass(frozen=True)
class HierarchyIndex:
    """Read-only view of which bullet ids exist and where each one lives.

    Built once per selection request and never mutated afterwards.
    """

    valid_ids: frozenset[str]
    placements: dict[str, Placement] = field(default_factory=dict)

    def __contains__(self, bullet_id: object) -> bool:
        return bullet_id in self.valid_ids

    def __len__(self) -> int:
        return len(self.valid_ids)

    def placement_of(self, bullet_id: str) -> Placement:
        return self.placements[bullet_id]


def iter_bullets(
    experience: Iterable[Organization],
    include_descriptions: bool = False,
) -> Iterator[tuple[Organization, Role, Bullet]]:
    """Yield (organization, role, bullet) in compendium order.

    With *include_descriptions*, a role's description is yielded first as a
    synthetic bullet (see ``Role.description_as_bullet``).
    """
    for organization in experience:
        for role in organization.children:
            if include_descriptions:
                synthetic = role.description_as_bullet()
                if synthetic is not None:
                    yield organization, role, synthetic
            for bullet in role.children:
                yield organization, role, bullet


def extract_all_bullet_ids(
    experience: Iterable[Organization],
    include_descriptions: bool = False,
) -> set[str]:
    """Return every bullet id in the compendium."""
    return {bullet.id for _, _, bullet in iter_bullets(experience, include_descriptions)}


def build_hierarchy_index(
    compendium: Compendium,
    include_descriptions: bool = False,
) -> HierarchyIndex:
    """Map every bullet id to its owning organization and role. O(n) in bullets."""
    placements = {
        bullet.id: Placement(organization_id=organization.id, role_id=role.id)
        for organization, role, bullet in iter_bullets(compendium.experience, include_descriptions)
    }
    return HierarchyIndex(valid_ids=frozenset(placements), placements=placements)


def build_context_lookup(
    compendium: Compendium,
    include_descriptions: bool = False,
) -> dict[str, tuple[Organization, Role, Bullet]]:
    """Map bullet id → (organization, role, bullet) for attaching render context."""
    return {
        bullet.id: (organization, role, bullet)
        for organization, role, bullet in iter_bullets(compendium.experience, include_descriptions)
    }
