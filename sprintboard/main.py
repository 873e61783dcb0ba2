# sprintboard/main.py - Application entry point
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from slowapi.middleware import SlowAPIMiddleware

from sprintboard import __version__
from sprintboard.core.config import settings
from sprintboard.core import tracing
from sprintboard.db.database import get_db, init_db
from sprintboard.realtime.notifier import ChangeNotifier

from sprintboard.api.v1.router import api_router
from sprintboard.api.v1.endpoints import realtime

from sprintboard.middleware.security import SecurityHeadersMiddleware
from sprintboard.middleware.cors import setup_cors_middleware
from sprintboard.middleware.monitoring import MonitoringMiddleware

from sprintboard.exceptions.store import SprintboardError
from sprintboard.exceptions.handlers import (
    sprintboard_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    rate_limit_exception_handler,
    global_exception_handler,
    starlette_http_exception_handler
)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.DEFAULT_RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED
)

tracing_enabled = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create missing tables on startup and close every viewer socket on shutdown
    """
    tracing.info("Sprintboard API startup initiated")

    try:
        await init_db()
    except Exception as e:
        tracing.error(f"Database initialization failed: {e}")
        raise

    tracing.info(f"Environment: {settings.ENVIRONMENT}")
    tracing.info(f"Tracing: {'OpenTelemetry' if tracing_enabled else 'local IDs'}")
    tracing.info(f"Rate Limiting: {'Enabled' if settings.RATE_LIMIT_ENABLED else 'Disabled'}")
    tracing.info(f"Auth required on mutations: {settings.AUTH_REQUIRED}")
    tracing.info(f"Sprintboard API v{__version__} startup complete")

    yield

    tracing.info("Sprintboard API shutdown initiated")
    await app.state.notifier.close_all()
    tracing.info("Sprintboard API shutdown complete")


app = FastAPI(
    title="Sprintboard API",
    description="Sprint and task dashboard with live change notifications",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT == "development" else None
)

# One notifier per process; the gateway and the socket handler both reach it through app.state
app.state.notifier = ChangeNotifier()

# =============================================================================
# TRACING SETUP
# =============================================================================

tracing_enabled = tracing.setup_tracing(app)

# =============================================================================
# MIDDLEWARE SETUP (last added runs first)
# =============================================================================

app.add_middleware(MonitoringMiddleware)
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.ENVIRONMENT == "production")
setup_cors_middleware(app)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SprintboardError, sprintboard_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# =============================================================================
# PROMETHEUS METRICS
# =============================================================================

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/metrics", "/ws"]
)
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

# =============================================================================
# ROUTES
# =============================================================================

app.include_router(api_router, prefix="/api")
app.include_router(realtime.router, tags=["realtime"])


@app.get("/health", tags=["System"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check with database connectivity test
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        tracing.error(f"Health check failed: {e}", endpoint="/health", error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy - database connection failed"
        )

    return {
        "status": "healthy",
        "service": "Sprintboard API",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "trace_id": tracing.get_current_trace_id(),
        "checks": {
            "database": "connected",
            "tracing": "enabled" if tracing_enabled else "disabled",
            "viewers": app.state.notifier.connection_count
        }
    }


@app.get("/", tags=["System"])
async def api_information():
    """API information endpoint"""
    return {
        "message": "Sprintboard API",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "status": "operational",
        "trace_id": tracing.get_current_trace_id(),
        "endpoints": {
            "health": "/health",
            "metrics": "/metrics",
            "sprints": "/api/sprints",
            "tasks": "/api/tasks",
            "deployments": "/api/deployments",
            "webhooks": "/api/webhooks",
            "realtime": "/ws",
            "documentation": "/docs" if settings.ENVIRONMENT == "development" else None
        },
        "timestamp": time.time()
    }
