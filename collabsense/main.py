"""
FastAPI backend for the CollabSense engine.

Work-pattern analytics, connection suggestions, similar-work alerts,
project insights and smart notifications.

This main file handles app initialization, error mapping and router
mounting. All endpoints are organized in the routers/ directory.
"""

import logging
from pathlib import Path
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables
env_paths = [
    Path(__file__).parent.parent / '.env',
    Path(__file__).parent / '.env',
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from . import __version__
from .cache import check_redis_health
from .config import settings
from .database import init_db, check_database_health
from .dependencies import limiter
from .exceptions import DataUnavailable, InvalidInput, NotFound
from .routers import notifications, websocket, work_patterns

# =============================================================================
# Configuration
# =============================================================================

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

# =============================================================================
# Lifespan Event Handler
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for FastAPI application.
    Handles startup and shutdown events.
    """
    init_db()
    logger.info("Database initialized")

    yield  # Application runs here

    logger.info("Application shutting down")

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="CollabSense",
    description="Work-pattern analytics and recommendation engine",
    version=__version__,
    lifespan=lifespan
)

# Rate limiting (the limiter itself is disabled in test mode)
app.state.limiter = limiter

# CORS
origins = settings.allowed_origins.split(',') if settings.allowed_origins != '*' else ['*']

if origins == ['*'] and settings.is_production:
    logger.warning(
        "SECURITY WARNING: CORS is set to allow ALL origins (*). "
        "Set COLLABSENSE_ALLOWED_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "error": "invalid_input", "field": exc.field}
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "error": "not_found", "entity": exc.entity}
    )


@app.exception_handler(DataUnavailable)
async def data_unavailable_handler(request: Request, exc: DataUnavailable):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "error": "data_unavailable", "source": exc.source}
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    detail = str(exc.detail)
    if "hour" in detail.lower():
        retry_after = 3600
    elif "second" in detail.lower():
        retry_after = 1
    else:
        retry_after = 60
    return JSONResponse(
        status_code=429,
        content={
            "detail": detail,
            "error": "rate_limit_exceeded",
            "retry_after_seconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)}
    )

# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(work_patterns.router)
app.include_router(notifications.router)
app.include_router(websocket.router)

# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns service status with database and Redis connectivity.
    """
    db_health = check_database_health()
    redis_health = check_redis_health()
    return {
        "status": "healthy" if db_health.get("database_connected") else "degraded",
        "version": __version__,
        "environment": settings.environment,
        **db_health,
        **redis_health,
    }
