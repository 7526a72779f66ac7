"""Error taxonomy for AI selection.

Two renderings of every error:
1. Verbose, compiler-style: fed back to the model on retry and logged for operators
2. Plain-language: the only thing end users see

Example verbose rendering::

    error[WRONG_BULLET_COUNT]: Expected at least 30 bullets, got 25

      The AI must score at least 30 bullets to give the server selection options.

      --> AI response:0
       |
       | {"bullets": [{"id": "acme-sre-migration", "score": 0.9}, ...
       | ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    PROVIDER_ERROR = "E000_PROVIDER_ERROR"
    NO_JSON_FOUND = "E001_NO_JSON_FOUND"
    INVALID_JSON = "E002_INVALID_JSON"
    MISSING_BULLET_IDS = "E003_MISSING_BULLET_IDS"
    WRONG_BULLET_COUNT = "E004_WRONG_BULLET_COUNT"
    INVALID_BULLET_ID = "E005_INVALID_BULLET_ID"
    DUPLICATE_BULLET_ID = "E006_DUPLICATE_BULLET_ID"
    DIVERSITY_VIOLATION = "E007_DIVERSITY_VIOLATION"
    MISSING_REASONING = "E008_MISSING_REASONING"
    INVALID_SCORE = "E009_INVALID_SCORE"
    INVALID_SALARY = "E010_INVALID_SALARY"
    PROVIDER_DOWN = "E011_PROVIDER_DOWN"


# Recoverable by re-prompting the same provider with the error as feedback
FORMAT_ERRORS = frozenset({
    ErrorCode.NO_JSON_FOUND,
    ErrorCode.INVALID_JSON,
    ErrorCode.MISSING_BULLET_IDS,
    ErrorCode.WRONG_BULLET_COUNT,
    ErrorCode.INVALID_BULLET_ID,
    ErrorCode.DUPLICATE_BULLET_ID,
    ErrorCode.MISSING_REASONING,
    ErrorCode.INVALID_SCORE,
    ErrorCode.DIVERSITY_VIOLATION,
})

_USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.PROVIDER_ERROR: "The AI service encountered an issue. Please try again.",
    ErrorCode.NO_JSON_FOUND: "The AI response was unclear. Please try again.",
    ErrorCode.INVALID_JSON: "The AI response was malformed. Please try again.",
    ErrorCode.MISSING_BULLET_IDS: "The AI did not select any experience. Please try again.",
    ErrorCode.WRONG_BULLET_COUNT: "The AI selected too few experiences. Please try again.",
    ErrorCode.INVALID_BULLET_ID: "The AI referenced experiences that do not exist. Please try again.",
    ErrorCode.DUPLICATE_BULLET_ID: "The AI selected the same experience twice. Please try again.",
    ErrorCode.DIVERSITY_VIOLATION: "The AI selection needed more variety. Please try again.",
    ErrorCode.MISSING_REASONING: "The AI did not explain its selection. Please try again.",
    ErrorCode.INVALID_SCORE: "The AI provided invalid relevance scores. Please try again.",
    ErrorCode.INVALID_SALARY: "The salary could not be read from the job description.",
    ErrorCode.PROVIDER_DOWN: "The AI service is temporarily unavailable. Please try again later or pick another model.",
}

_SPAN_MARKER_LIMIT = 60


@dataclass(frozen=True)
class Span:
    start: int
    end: int
    excerpt: str


@dataclass(frozen=True)
class ParseError:
    """One failure, with remediation text the model can act on."""

    code: ErrorCode
    message: str
    help: str = ""
    span: Span | None = None

    @property
    def is_format_error(self) -> bool:
        return self.code in FORMAT_ERRORS

    @property
    def is_provider_down(self) -> bool:
        return self.code is ErrorCode.PROVIDER_DOWN


def render_verbose(error: ParseError) -> str:
    """Compiler-style rendering used as retry feedback and in operator logs."""
    lines = [f"error[{error.code.name}]: {error.message}", ""]
    lines.extend(f"  {line}" for line in error.help.split("\n"))
    if error.span is not None:
        lines.append("")
        lines.append(f"  --> AI response:{error.span.start}")
        lines.append("   |")
        lines.append(f"   | {error.span.excerpt}")
        lines.append(f"   | {'~' * min(len(error.span.excerpt), _SPAN_MARKER_LIMIT)}")
    return "\n".join(lines)


def render_user_message(error: ParseError) -> str:
    return _USER_MESSAGES.get(error.code, "An unexpected error occurred. Please try again.")


class ProviderAttemptError(Exception):
    """A single provider attempt failed. Raised by adapters, handled by the orchestrator."""

    def __init__(self, error: ParseError, provider: str) -> None:
        self.error = error
        self.provider = provider
        super().__init__(f"[{provider}] {error.code.name}: {error.message}")


class SelectionError(Exception):
    """Every provider and retry was exhausted. Carries the full error history."""

    def __init__(
        self,
        message: str,
        errors: list[ParseError],
        provider: str,
        attempts: int = 0,
    ) -> None:
        self.message = message
        self.errors = list(errors)
        self.provider = provider
        self.attempts = attempts
        super().__init__(message)

    @property
    def last_error(self) -> ParseError | None:
        return self.errors[-1] if self.errors else None

    def verbose_log(self) -> str:
        return "\n\n---\n\n".join(render_verbose(e) for e in self.errors)

    def user_message(self) -> str:
        last = self.last_error
        if last is not None:
            return render_user_message(last)
        return (
            f"AI selection failed after {self.attempts} attempts. "
            "Please try again or use a different AI model."
        )
