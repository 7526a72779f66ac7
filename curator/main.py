"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

from curator.agents.errors import SelectionError  # noqa: E402
from curator.api.routes import resume  # noqa: E402
from curator.config import get_settings  # noqa: E402
from curator.exceptions import AppError  # noqa: E402
from curator.schemas.pydantic import SelectionFailureResponse  # noqa: E402

settings = get_settings()
logger.info("CORS origins: %s", settings.cors_origins)

app = FastAPI(title="Resume Curator API", version="0.1.0")


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SelectionError)
async def selection_error_handler(request: Request, exc: SelectionError):
    # Full history goes to the log; the client only gets the plain-language message
    logger.error(
        "AI selection failed (provider=%s, attempts=%d):\n%s",
        exc.provider, exc.attempts, exc.verbose_log(),
    )
    body = SelectionFailureResponse(
        user_message=exc.user_message(),
        provider=exc.provider,
        attempts=exc.attempts,
    )
    return JSONResponse(status_code=502, content=body.model_dump())


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(resume.router)


@app.get("/")
async def root():
    return {"name": "Resume Curator API", "version": "0.1.0", "docs": "/docs"}


@app.get("/health")
async def health():
    return {"status": "ok"}
