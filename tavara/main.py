"""
Tavara.care Coordination Service - Main Application Entry Point

FastAPI application for caregiver matching, care team coordination,
scheduling, payroll and family onboarding.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tavara.api.errors import register_exception_handlers
from tavara.api.routes import router
from tavara.api.schemas import HealthResponse
from tavara.core.logging import setup_logging, logger, log_response
from tavara.core.security import SecurityHeaders
from tavara.core.settings import get_settings
from tavara.db.base import SessionLocal, init_db
from tavara.monitoring.metrics import metrics_collector

# Initialize settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info(f"Starting Tavara.care Coordination Service v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Create tables if they don't exist
    init_db()
    logger.info("Database initialised")

    yield

    # Shutdown
    logger.info("Shutting down Tavara.care Coordination Service")


# Create FastAPI application
app = FastAPI(
    title="Tavara.care Coordination Service",
    description="Caregiver matching, care teams, scheduling and onboarding API",
    version=settings.APP_VERSION,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Time every request and attach the security headers."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    # Add security headers
    for name, value in SecurityHeaders.get_headers().items():
        response.headers[name] = value

    metrics_collector.record_response_time(duration_ms)
    if request.url.path.startswith("/api/"):
        log_response(
            endpoint=request.url.path,
            method=request.method,
            request_id=request.headers.get("X-Request-ID", "unknown"),
            status_code=response.status_code,
            duration_ms=duration_ms
        )
    return response


register_exception_handlers(app)

# Include API routes
app.include_router(router, prefix="/api/v1")


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check():
    """
    Health check endpoint for container orchestration.
    Reports database connectivity.
    """
    database = "connected"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"
    finally:
        db.close()

    return HealthResponse(
        status="healthy" if database == "connected" else "degraded",
        service="tavara-coordination-service",
        version=settings.APP_VERSION,
        database=database
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tavara.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
