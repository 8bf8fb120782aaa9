"""FastAPI application factory for the sponsorblocker REST API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Any
from urllib.parse import unquote

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from podcast_sponsorblocker import __version__
from podcast_sponsorblocker.api.routes import router as api_router
from podcast_sponsorblocker.pipeline.service import SponsorblockService, create_service
from podcast_sponsorblocker.utils.constant import (
    API_BEARER_TOKEN,
    API_CORS_ORIGINS,
    OPENAI_API_KEY,
    SERVICE_NAME,
)
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)

ENDPOINTS: dict[str, str] = {
    "GET /analyze?url=<url>": "Cached ad segments; 404 when not analyzed yet.",
    "POST /process": "Start the analysis pipeline (server-only). Body: { url }. Returns jobId.",
    "GET /process/{jobId}": "Status of a running or finished job.",
    "GET /podcasts": "All analyzed podcasts.",
    "GET /podcasts/requested": "Requested but not yet analyzed URLs.",
    "GET /health": "Health check",
}


def _request_log_line(request: Request, status_code: int, elapsed_ms: float) -> str:
    line = f"[HTTP] {request.method} {request.url.path} {status_code} {elapsed_ms:.0f}ms"
    url = request.query_params.get("url")
    if url:
        line += f" - {unquote(url).split('/')[-1]}"
    return line


def create_app(service: SponsorblockService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Preassembled service (tests inject fakes). When omitted the
            production service is created on startup, which also migrates the
            database.

    Returns:
        Configured FastAPI application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "service", None) is None:
            if not OPENAI_API_KEY:
                logger.warning("OPENAI_API_KEY is not set; processing requests will fail.")
            app.state.service = create_service()
        if not API_BEARER_TOKEN:
            logger.warning("API_BEARER_TOKEN is not set; POST /process is open to everyone.")
        yield

    app = FastAPI(
        title="Podcast Sponsorblocker API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.service = service
    app.include_router(api_router)

    origins = [origin.strip() for origin in API_CORS_ORIGINS.split(",") if origin.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        started = perf_counter()
        response = await call_next(request)
        elapsed_ms = (perf_counter() - started) * 1000
        logger.info(_request_log_line(request, response.status_code, elapsed_ms))
        return response

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Return a minimal health status payload."""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Return service metadata and the endpoint overview."""
        return {
            "service": "Podcast Sponsorblocker API",
            "version": __version__,
            "docs": "/docs",
            "endpoints": ENDPOINTS,
        }

    return app
