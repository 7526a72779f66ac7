"""Typed exception hierarchy for the curator HTTP layer.

Raise these instead of bare HTTPException so that:
- Service code is testable without a FastAPI request context
- Error codes are declared in one place
- main.py's AppError handler converts them to consistent JSON responses

Model-output failures are not AppErrors; see curator.agents.errors.
"""

from __future__ import annotations


class AppError(Exception):
    """Base application error — caught by FastAPI exception handler in main.py."""

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.detail
        super().__init__(self.detail)


class NotFoundError(AppError):
    """Requested resource (e.g. a role profile) does not exist in the compendium."""

    status_code = 404
    detail = "Not found"


class UnprocessableError(AppError):
    """Request body is structurally valid but semantically incorrect."""

    status_code = 422
    detail = "Unprocessable request"


class ServiceUnavailableError(AppError):
    """A required collaborator (compendium source) could not be loaded."""

    status_code = 503
    detail = "Resume data not available"
