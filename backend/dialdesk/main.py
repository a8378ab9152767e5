"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dialdesk.api.v1.routes import api_router
from dialdesk.core.config import ConfigManager, Settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup:
    - Validates external system configuration
    - Builds the service container (HTTP clients, repositories, services)

    Shutdown:
    - Closes provider HTTP clients
    """
    logger.info("Starting Dialdesk...")

    strict_validation = settings.environment == "production"

    try:
        from dialdesk.core.validation import validate_providers_on_startup
        validate_providers_on_startup(strict=strict_validation)
    except RuntimeError as e:
        if strict_validation:
            logger.error(f"Startup failed: {e}")
            raise
        logger.warning(f"Configuration warnings (non-fatal in {settings.environment}): {e}")

    from dialdesk.api.v1.dependencies import create_supabase_client
    from dialdesk.services.container import ServiceContainer

    config = ConfigManager(env=settings.environment)
    container = ServiceContainer.build(settings, config, create_supabase_client())
    app.state.container = container

    logger.info("Dialdesk started successfully")

    yield  # Application is running

    logger.info("Shutting down Dialdesk...")
    try:
        await container.close()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")
    app.state.container = None

    logger.info("Dialdesk shutdown complete")


app = FastAPI(
    title="Dialdesk",
    description="Outbound voice-agent campaigns, phone numbers and calendar booking",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": "Dialdesk API", "status": "running"}


@app.get("/health")
async def health_check():
    """Basic liveness plus whether services finished wiring."""
    container = getattr(app.state, "container", None)
    return {
        "status": "healthy",
        "services_ready": container is not None,
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
