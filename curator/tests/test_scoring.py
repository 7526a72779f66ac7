"""Tests for the heuristic scorer in curator/services/scoring.py."""

from __future__ import annotations

import pytest

from curator.schemas.compendium import Bullet, Organization, Role, RoleProfile
from curator.services.scoring import (
    organization_multiplier,
    role_multiplier,
    score_bullet,
    score_compendium,
    tag_relevance,
)


@pytest.fixture
def profile(compendium) -> RoleProfile:
    return compendium.find_role_profile("platform-engineer")


class TestTagRelevance:
    def test_mean_of_matched_weights(self):
        assert tag_relevance(["kubernetes", "leadership"], {"kubernetes": 1.0, "leadership": 0.8}) == pytest.approx(0.9)

    def test_unmatched_tags_ignored(self):
        assert tag_relevance(["kubernetes", "cooking"], {"kubernetes": 1.0}) == 1.0

    def test_no_matches(self):
        assert tag_relevance(["cooking"], {"kubernetes": 1.0}) == 0.0

    def test_no_tags(self):
        assert tag_relevance([], {"kubernetes": 1.0}) == 0.0


class TestMultipliers:
    def test_organization_multiplier_range(self):
        low = Organization(id="o", date_start="2020", priority=1)
        high = Organization(id="o", date_start="2020", priority=10)
        assert organization_multiplier(low) == pytest.approx(0.84)
        assert organization_multiplier(high) == pytest.approx(1.2)

    def test_role_without_tags_uses_priority_only(self):
        role = Role(id="r", name="R", date_start="2020", priority=5)
        assert role_multiplier(role, {"kubernetes": 1.0}) == pytest.approx(1.0)

    def test_role_tags_scale_multiplier(self):
        role = Role(id="r", name="R", date_start="2020", priority=5, tags=["kubernetes"])
        assert role_multiplier(role, {"kubernetes": 1.0}) == pytest.approx(1.1)


class TestScoreBullet:
    def test_irrelevant_bullet(self, compendium, profile):
        organization = compendium.experience[1]
        role = organization.children[0]
        bullet = role.children[2]  # frontend, priority 4
        # base 0.16, org 1.04, role 1.0
        assert score_bullet(bullet, role, organization, profile) == pytest.approx(0.1664)

    def test_clamped_to_one(self, compendium, profile):
        organization = compendium.experience[0]
        role = organization.children[0]
        assert score_bullet(role.children[0], role, organization, profile) == 1.0

    def test_never_negative(self, profile):
        organization = Organization(id="o", date_start="2020")
        role = Role(id="r", name="R", date_start="2020")
        bullet = Bullet(id="b", description="x", tags=["kubernetes"])
        weird = profile.model_copy(update={"tag_weights": {"kubernetes": -5.0}})
        assert score_bullet(bullet, role, organization, weird) == 0.0


class TestScoreCompendium:
    def test_scores_every_bullet_and_description(self, compendium, profile):
        scored = score_compendium(compendium, profile)
        assert [s.id for s in scored] == [
            "pos-1-description", "bullet-a1", "bullet-a2", "bullet-a3", "bullet-b1", "bullet-b2", "bullet-b3",
        ]

    def test_all_scores_in_unit_interval(self, compendium, profile):
        assert all(0.0 <= s.score <= 1.0 for s in score_compendium(compendium, profile))

    def test_deterministic(self, compendium, profile):
        assert score_compendium(compendium, profile) == score_compendium(compendium, profile)
