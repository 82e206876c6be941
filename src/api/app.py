"""FastAPI Application Factory.

Creates the screener API application with request tracing, CORS and
structured error responses.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.config import APIConfig
from src.api.models import ErrorResponse, HealthResponse
from src.api.routes import screener
from src.logging_config import RequestTracingMiddleware, configure_logging, get_request_id
from src.screener import FilterSpecError
from src.settings import get_settings

logger = logging.getLogger(__name__)


# ── Lifespan (startup / shutdown) ────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize logging at startup."""
    configure_logging(get_settings().logging_config())
    logger.info("Screener API starting up")
    yield
    logger.info("Screener API shutting down")


# ── Error handlers ───────────────────────────────────────────────────


async def filter_spec_error_handler(request: Request, exc: FilterSpecError) -> JSONResponse:
    logger.warning(f"Rejected filter payload on {request.url.path}: {exc}")
    body = ErrorResponse(
        error="Invalid filter specification",
        code="invalid_filter_spec",
        detail=str(exc),
        request_id=get_request_id() or None,
    )
    return JSONResponse(status_code=422, content=body.model_dump())


def _config_from_settings() -> APIConfig:
    settings = get_settings()
    return APIConfig(prefix=settings.api_prefix, cors_origins=list(settings.cors_origins))


# ── App Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[APIConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware stack (outermost → innermost):
        RequestTracing → CORS → App

    Args:
        config: API configuration. Built from settings if not provided.

    Returns:
        Configured FastAPI application.
    """
    config = config or _config_from_settings()

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
        docs_url=config.docs_url,
        lifespan=lifespan,
    )

    # add_middleware prepends, so order here is innermost-first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )
    app.add_middleware(RequestTracingMiddleware)

    app.add_exception_handler(FilterSpecError, filter_spec_error_handler)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=config.version)

    app.include_router(screener.router, prefix=config.prefix)

    logger.info(f"Screener API v{config.version} initialized")
    return app
