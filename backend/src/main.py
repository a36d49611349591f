"""FastAPI application entry point for SafeReport.

Confidential incident reporting REST API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from safereport import __version__
from safereport.api import register_exception_handlers
from safereport.api.middleware import setup_middleware
from safereport.config import get_settings
from safereport.db import close_all_connections
from safereport.logging import get_logger, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    from safereport.reports.alerts import get_alert_dispatcher

    # Startup
    settings = get_settings()
    logger.info(
        "Starting SafeReport API",
        extra={
            "environment": settings.environment,
            "debug": settings.api_debug,
        },
    )

    yield

    # Shutdown: let in-flight alert hand-offs finish before the broker goes away
    logger.info("Shutting down SafeReport API")
    await get_alert_dispatcher().drain()
    await close_all_connections()


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="SafeReport API",
    description="Confidential incident reporting REST API",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

register_exception_handlers(app)
setup_middleware(app)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =========================
# Health Check Endpoints
# =========================


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "safereport-api"}


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """Readiness check that verifies database and broker connectivity."""
    from sqlalchemy import text

    from safereport.db import get_db_session, get_redis

    checks = {
        "postgres": "unknown",
        "redis": "unknown",
    }

    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
            checks["postgres"] = "healthy"
    except Exception as e:
        checks["postgres"] = f"unhealthy: {str(e)}"

    try:
        redis = await get_redis()
        await redis.ping()
        checks["redis"] = "healthy"
    except Exception as e:
        checks["redis"] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "checks": checks,
        },
    )


@app.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness check - just confirms the service is running."""
    return {"status": "alive"}


# =========================
# API Routers
# =========================

from safereport.api.reports import router as reports_router

app.include_router(reports_router, prefix="/api/v1", tags=["Reports"])


# =========================
# Root Endpoint
# =========================


@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "name": "SafeReport API",
        "version": __version__,
        "description": "Confidential incident reporting",
        "docs": "/docs" if settings.is_development else None,
    }
