"""
FastAPI application for the session gateway.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from auth.config import AuthConfig
from auth.dependencies import build_components
from auth.schemas import HealthResponse

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    config: AuthConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Build the app. The refresh registry and HTTP client live for the app's lifespan."""
    config = config or AuthConfig()
    configure_logging(config.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown."""
        if not config.is_provider_configured:
            logger.warning("Keycloak issuer or client credentials missing; sign-in and refresh will fail")
        app.state.auth = build_components(config, http_client=http_client, clock=clock)
        logger.info("Auth service running on %s", config.AUTH_URL)
        yield
        await app.state.auth.aclose()
        logger.info("Auth service stopped")

    app = FastAPI(
        title="Session Gateway",
        description="Cookie-backed OIDC session service",
        lifespan=lifespan,
    )

    if config.use_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[config.APP_URL],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check."""
        return HealthResponse(status="ok")

    return app


if __name__ == "__main__":
    settings = AuthConfig()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)
