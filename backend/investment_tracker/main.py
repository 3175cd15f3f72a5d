"""
Investment Tracker - Main Application Entry Point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from investment_tracker import __version__
from investment_tracker.config import settings
from investment_tracker.api.v1.router import api_router
from investment_tracker.db.database import engine, init_db
from investment_tracker.db.redis_client import redis_client
from investment_tracker.services.change_notifier import get_change_notifier
from investment_tracker.utils.exceptions import InvestmentTrackerException
from investment_tracker.utils.logger import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events handler."""
    # Startup
    setup_logging()
    logger.info("Starting Investment Tracker...")

    await init_db()
    logger.info("Database initialized")

    # Redis only backs the performance cache
    try:
        await redis_client.initialize()
    except Exception as e:
        logger.warning(f"Redis unavailable, performance cache disabled: {e}")

    yield

    # Shutdown
    logger.info("Shutting down Investment Tracker...")
    await get_change_notifier().drain()
    await redis_client.close()
    await engine.dispose()


async def investment_tracker_exception_handler(request: Request, exc: InvestmentTrackerException):
    """Map domain exceptions to JSON error responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **({"details": exc.details} if exc.details else {})},
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-currency portfolio tracking with linked cash ledgers and year performance",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvestmentTrackerException, investment_tracker_exception_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": __version__,
            "redis": "connected" if redis_client.is_available else "unavailable",
        }

    return app


# Create the application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "investment_tracker.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
