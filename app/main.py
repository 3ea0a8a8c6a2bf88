"""
FastAPI application entry point.
Initializes the FastAPI app, configures logging, wires services and includes the storefront routes.
"""

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, settings as default_settings
from app.dependencies import ServiceContainer
from app.routers import iiko_admin, storefront
from app.utils.logger import configure_logging, mask

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the app; tests pass their own settings or container."""
    settings = settings or default_settings

    app = FastAPI(
        title="iiko Mini App Backend",
        description="Storefront backend for a chat mini-app with iiko catalog sync and order relay",
        version="1.0.0",
    )

    # The mini-app frontend is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(storefront.router)
    app.include_router(iiko_admin.router)
    app.state.services = services or ServiceContainer(settings)

    @app.on_event("startup")
    async def startup_event():
        """Application startup event."""
        logger.info(
            "Configuration loaded",
            bot_token=mask(settings.bot_token),
            iiko_api_base=settings.iiko_api_base or None,
            iiko_api_login=mask(settings.iiko_api_login),
            iiko_org_id=settings.iiko_org_id or None,
        )
        if not settings.iiko_configured:
            logger.warning("iiko not configured, running with fallback menu")

        await app.state.services.startup()
        logger.info("iiko Mini App Backend started", port=settings.port)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Application shutdown event."""
        await app.state.services.shutdown()
        logger.info("iiko Mini App Backend shutting down")

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        services: ServiceContainer = app.state.services
        return {
            "status": "healthy",
            "iiko_configured": settings.iiko_configured,
            "catalog_synced": services.catalog.last_sync_ok,
            "products": len(services.store.catalog.products),
            "relay_pending": services.relay.queue.qsize(),
            "relay_failures": len(services.relay.failures),
        }

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=default_settings.port)
