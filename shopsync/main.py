"""
Card Shop Sync - Main Application Entry Point
Keeps shops, users and memberships in step with the identity provider
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager
import structlog

from shopsync.core.config import get_settings
from shopsync.core.logging import configure_logging
from shopsync.api import webhooks

configure_logging()

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Initializing {settings.APP_NAME}")
    # Tables are created by Alembic migrations, not auto-generated
    logger.info("Database managed by Alembic migrations")
    if not settings.WEBHOOK_SIGNING_SECRET:
        logger.warning("WEBHOOK_SIGNING_SECRET is not set, webhook deliveries will be rejected")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")


# Create FastAPI application
app = FastAPI(
    title="Card Shop Sync API",
    description="Identity provider to database synchronization for card shops",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "cardshop-sync-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Card Shop Sync API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "shopsync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
