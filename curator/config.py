"""Centralized settings — all env vars and magic numbers live here."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Load .env before anything reads os.getenv
load_dotenv(Path(__file__).resolve().parent / ".env")


class Settings(BaseSettings):
    """Application settings. Values come from environment variables, then defaults."""

    # ── API keys ──
    # An empty key marks the provider as unavailable; it is never a startup error.
    cerebras_api_key: str = Field(default="", alias="CEREBRAS_API_KEY")
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")

    # ── Endpoints ──
    cerebras_base_url: str = Field(default="https://api.cerebras.ai/v1", alias="CEREBRAS_BASE_URL")

    # ── Server ──
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    compendium_path: str = Field(default="data/resume-data.json", alias="COMPENDIUM_PATH")

    # ── Provider calls ──
    # First provider tried when a request names none; the rest follow in fallback order
    default_provider: Literal["cerebras-gpt", "cerebras-llama", "claude-sonnet", "claude-haiku"] = "cerebras-gpt"
    provider_timeout_s: float = 30.0
    max_retries: int = 3
    enable_fallback: bool = True
    temperature: float = 0.3

    # ── Selection defaults ──
    max_bullets: int = 28
    max_per_organization: int | None = 6
    max_per_role: int | None = 4
    min_per_organization: int | None = None

    # ── Model output requirements ──
    min_bullets: int = 30
    bullet_buffer: int = 10
    min_job_description_chars: int = 50

    # ── Context budget ──
    context_limit_tokens: int = 128_000
    compendium_context_share: float = 0.6
    context_warning_ratio: float = 0.8
    chars_per_token: int = 4

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def _check_selection_defaults(self) -> "Settings":
        """Fail fast at startup if the selection defaults contradict each other."""
        problems = []
        if self.max_bullets < 1:
            problems.append("max_bullets must be at least 1")
        for name in ("max_per_organization", "max_per_role"):
            value = getattr(self, name)
            if value is not None and value < 1:
                problems.append(f"{name} must be at least 1 when set")
        if (
            self.min_per_organization is not None
            and self.max_per_organization is not None
            and self.min_per_organization > self.max_per_organization
        ):
            problems.append("min_per_organization cannot exceed max_per_organization")
        if self.max_retries < 1:
            problems.append("max_retries must be at least 1")
        if self.min_bullets < 1:
            problems.append("min_bullets must be at least 1")
        if self.bullet_buffer < 0:
            problems.append("bullet_buffer cannot be negative")
        if self.context_limit_tokens < 1 or self.chars_per_token < 1:
            problems.append("context_limit_tokens and chars_per_token must be at least 1")
        for name in ("compendium_context_share", "context_warning_ratio"):
            if not 0 < getattr(self, name) <= 1:
                problems.append(f"{name} must be in (0, 1]")
        if problems:
            raise ValueError(f"Invalid selection settings: {'; '.join(problems)}")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached singleton settings instance."""
    return Settings()
