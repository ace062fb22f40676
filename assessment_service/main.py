from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger

from .api import routes_answers, routes_pages, routes_participants
from .catalog import seed_catalog
from .config import settings
from .database import Base, engine
from .errors import AssessmentError, Fatal, InvalidInput, RateLimited
from .rate_limit import limiter, sweep_forever
from . import models as _models  # noqa: F401 registers ORM mappings with Base.metadata

# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    """Configure structured JSON logging when log_format=json (default)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


_configure_logging()

logger = logging.getLogger("assessment.errors")

# Initialise database tables and the question catalog on startup
Base.metadata.create_all(bind=engine)
seed_catalog()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    sweeper = asyncio.create_task(sweep_forever(limiter, settings.rate_limit_sweep_seconds))
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title="Assessment Progress Service",
    version="0.1.0",
    description=(
        "Listening/reading assessment delivery: participant registration, "
        "idempotent answer scoring, progress-gated navigation and per-client "
        "rate limiting."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.exception_handler(RateLimited)
async def _rate_limited_handler(_request: Request, exc: RateLimited) -> JSONResponse:
    return JSONResponse(exc.body(), status_code=exc.status_code, headers=exc.headers())


@app.exception_handler(Fatal)
async def _fatal_handler(request: Request, exc: Fatal) -> JSONResponse:
    logger.error(
        "Fatal error on %s %s: %s", request.method, request.url.path, exc.detail,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse({"error": Fatal.message}, status_code=exc.status_code)


@app.exception_handler(AssessmentError)
async def _assessment_error_handler(_request: Request, exc: AssessmentError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(_request: Request, _exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": InvalidInput.message}, status_code=InvalidInput.status_code)


app.include_router(routes_participants.router)
app.include_router(routes_answers.router)
app.include_router(routes_pages.router)


@app.get("/health", tags=["meta"])
def health() -> dict:
    return {"status": "healthy"}
