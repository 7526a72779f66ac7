"""Shared fixtures for curator tests."""

from __future__ import annotations

import json

import pytest

from curator.agents.providers.base import AI_MODELS, BackendFailure, Completion, ProviderAdapter
from curator.config import Settings
from curator.schemas.compendium import Compendium
from curator.schemas.pydantic import SelectionConfig
from curator.services.hierarchy import build_hierarchy_index


@pytest.fixture
def compendium_data() -> dict:
    """Two organizations, three roles, six bullets, in the camelCase wire format.

    Both organizations have a role called "pos-1" so role caps must be keyed
    by organization as well.
    """
    return {
        "experience": [
            {
                "id": "company-a",
                "name": "Company A",
                "location": "San Francisco, CA",
                "dateStart": "2021-01",
                "priority": 8,
                "link": "https://company-a.example",
                "children": [
                    {
                        "id": "pos-1",
                        "name": "Senior Engineer",
                        "dateStart": "2022-01",
                        "description": "Led the platform team",
                        "tags": ["leadership"],
                        "priority": 9,
                        "children": [
                            {
                                "id": "bullet-a1",
                                "description": "Migrated 40 services to Kubernetes with zero downtime",
                                "tags": ["kubernetes", "leadership"],
                                "priority": 9,
                            },
                            {
                                "id": "bullet-a2",
                                "description": "Built a Python deploy tool used by 12 teams",
                                "tags": ["python"],
                                "priority": 7,
                            },
                        ],
                    },
                    {
                        "id": "pos-2",
                        "name": "Engineer",
                        "dateStart": "2021-01",
                        "dateEnd": "2021-12",
                        "children": [
                            {
                                "id": "bullet-a3",
                                "description": "Raised test coverage from 40% to 85%",
                                "tags": ["python", "testing"],
                                "priority": 6,
                            },
                        ],
                    },
                ],
            },
            {
                "id": "company-b",
                "name": "Company B",
                "dateStart": "2018-03",
                "dateEnd": "2020-12",
                "priority": 6,
                "children": [
                    {
                        "id": "pos-1",
                        "name": "Developer",
                        "dateStart": "2018-03",
                        "dateEnd": "2020-12",
                        "children": [
                            {
                                "id": "bullet-b1",
                                "description": "Ran the first Kubernetes cluster in production",
                                "tags": ["kubernetes"],
                                "priority": 8,
                            },
                            {
                                "id": "bullet-b2",
                                "description": "Wrote Python ETL jobs for billing data",
                                "tags": ["python"],
                                "priority": 5,
                            },
                            {
                                "id": "bullet-b3",
                                "description": "Rebuilt the signup flow in React",
                                "tags": ["frontend"],
                                "priority": 4,
                            },
                        ],
                    },
                ],
            },
        ],
        "roleProfiles": [
            {
                "id": "platform-engineer",
                "name": "Platform Engineer",
                "tagWeights": {"kubernetes": 1.0, "leadership": 0.8, "python": 0.6},
                "scoringWeights": {"tagRelevance": 0.6, "priority": 0.4},
            },
        ],
    }


@pytest.fixture
def compendium(compendium_data) -> Compendium:
    return Compendium.model_validate(compendium_data)


@pytest.fixture
def hierarchy_index(compendium):
    return build_hierarchy_index(compendium)


@pytest.fixture
def selection_config() -> SelectionConfig:
    return SelectionConfig(max_bullets=4, max_per_organization=3, max_per_role=2)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with both providers configured and no real endpoints involved.

    The bullet floor is lowered to the size of the six-bullet fixture compendium.
    """
    return Settings(
        CEREBRAS_API_KEY="test-cerebras-key",
        ANTHROPIC_API_KEY="test-anthropic-key",
        COMPENDIUM_PATH="does-not-exist.json",
        min_bullets=6,
    )


def _make_response(scores: dict[str, float], reasoning: str = "Kubernetes experience weighted highest", **extra) -> str:
    """Build a model response body scoring *scores*."""
    payload = {
        "bullets": [{"id": bullet_id, "score": score} for bullet_id, score in scores.items()],
        "reasoning": reasoning,
        **extra,
    }
    return json.dumps(payload)


@pytest.fixture
def valid_scores() -> dict[str, float]:
    return {
        "bullet-a1": 0.95,
        "bullet-b1": 0.9,
        "bullet-a2": 0.7,
        "bullet-a3": 0.6,
        "bullet-b2": 0.5,
        "bullet-b3": 0.1,
    }


@pytest.fixture
def valid_response(valid_scores) -> str:
    return _make_response(
        valid_scores,
        job_title="Senior Platform Engineer",
        salary={"min": 180000, "max": 220000, "currency": "USD", "period": "annual"},
    )


class ScriptedProvider(ProviderAdapter):
    """Adapter whose transport replays a fixed script instead of calling a backend.

    Each script entry is a response string, a BackendFailure, or an exception
    to raise from the transport.
    """

    def __init__(self, name: str, settings: Settings, script: list, available: bool = True) -> None:
        super().__init__(AI_MODELS[name], settings)
        self.script = list(script)
        self.available = available
        self.prompts: list[str] = []

    def is_available(self) -> bool:
        return self.available

    async def _transport(self, system: str, user: str):
        self.prompts.append(user)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if isinstance(step, BackendFailure):
            return step
        return Completion(text=step, tokens_used=1234)


@pytest.fixture
def scripted_providers(test_settings):
    """Returns (register, factory): register scripts per provider name, pass factory to the orchestrator."""
    providers: dict[str, ScriptedProvider] = {}

    def register(name: str, script: list, available: bool = True) -> ScriptedProvider:
        providers[name] = ScriptedProvider(name, test_settings, script, available)
        return providers[name]

    def factory(name: str) -> ProviderAdapter:
        if name not in providers:
            return ScriptedProvider(name, test_settings, [], available=False)
        return providers[name]

    return register, factory


@pytest.fixture
def make_response():
    """Factory fixture: ``make_response({"bullet-a1": 0.9}, reasoning=..., **extra)``."""
    return _make_response
