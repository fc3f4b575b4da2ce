"""
FastAPI application entry point.

Configures middleware, lifespan events, and mounts all routers.
Run locally: uvicorn pitchdeck.main:app --reload
Production:  gunicorn pitchdeck.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pitchdeck.api.v1.routes import health, outlines, slides
from pitchdeck.core.config import get_settings
from pitchdeck.core.logging import get_logger, setup_logging
from pitchdeck.core.security import limiter
from pitchdeck.models.database import create_all, get_session_factory

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown events."""
    setup_logging()
    logger.info(
        "app_starting",
        environment=settings.app_env,
        database=settings.database_url[:30] + "...",
    )

    # The document store lives in a single table; make sure it exists.
    await create_all(get_session_factory().kw["bind"])

    yield

    logger.info("app_shutting_down")


app = FastAPI(
    title="Pitch Deck Generator",
    description="LangGraph pipelines for pitch deck outlines and slide content",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.app_env != "production" else None,
    redoc_url="/redoc" if settings.app_env != "production" else None,
)

# ── Middleware ──────────────────────────────────────────────
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Rate limiting ──────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── Routes ─────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(outlines.router, prefix="/api/v1")
app.include_router(slides.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "service": "Pitch Deck Generator",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz/",
    }
