"""
FastAPI application factory.

The lifespan builds the service container and session store once per
process and closes vendor HTTP sessions on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from src.config.settings import Settings, get_settings
from src.workflow.services import Services
from src.workflow.session_store import SessionStore

logger = structlog.get_logger()

VERSION = "1.0.0"


def create_fastapi_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build services from. Defaults to the environment.
        services: Prebuilt services; when given, the lifespan does not build
            or close them.

    Returns:
        Configured FastAPI app instance.
    """

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        logger.info("application_starting", version=VERSION)
        owned = services is None
        fastapi_app.state.services = services or Services.from_settings(settings or get_settings())
        fastapi_app.state.sessions = SessionStore()
        logger.info(
            "services_ready",
            integrations=fastapi_app.state.services.integrations_enabled(),
        )
        try:
            yield
        finally:
            logger.info("application_shutting_down")
            if owned:
                await fastapi_app.state.services.aclose()

    fastapi_app = FastAPI(
        title="Product Maestro",
        description="Multi-agent product management workflow: idea to PRD, sprints and visuals",
        version=VERSION,
        lifespan=lifespan,
    )

    from src.api.routes.agents import router as agents_router
    from src.api.routes.oauth import router as oauth_router
    from src.api.routes.workflows import router as workflows_router

    fastapi_app.include_router(agents_router)
    fastapi_app.include_router(workflows_router)
    fastapi_app.include_router(oauth_router)

    @fastapi_app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": VERSION,
            "integrations": fastapi_app.state.services.integrations_enabled(),
        }

    return fastapi_app
