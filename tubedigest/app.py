"""
FastAPI application for the TubeDigest summary service.

This module wires the summary job, entitlement, and billing webhook routers
into the web application, and manages the job orchestrator's lifecycle.
"""

import logging
import time
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from uvicorn import run

from .config import settings, setup_logging
from .database import init_database, check_database_health, close_database_connections
from .database.exceptions import DatabaseError
from .services.orchestrator import create_orchestrator
from .api import summaries_router, users_router, webhooks_router

logger = logging.getLogger(__name__)

app_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    An orchestrator already placed on ``app.state`` is used as is.
    """
    global app_start_time

    # Startup
    app_start_time = time.time()
    setup_logging()
    logger.info("Initializing TubeDigest API")

    for issue in settings.validate_configuration():
        logger.warning(f"Configuration issue: {issue}")

    if not init_database():
        logger.warning("Database initialization failed, but continuing startup")

    owns_orchestrator = getattr(app.state, 'orchestrator', None) is None
    if owns_orchestrator:
        app.state.orchestrator = create_orchestrator(settings)

    try:
        app.state.orchestrator.start(requeue_pending=settings.job_requeue_pending_on_startup)
    except DatabaseError as e:
        logger.error(f"Job orchestrator startup pass failed: {e}")

    logger.info("TubeDigest API startup complete")
    yield

    # Shutdown
    logger.info("Shutting down TubeDigest API")
    app.state.orchestrator.shutdown()
    if owns_orchestrator:
        app.state.orchestrator = None
        close_database_connections()


app = FastAPI(
    title=settings.app_name,
    description="Asynchronous AI-powered YouTube video summary service",
    version=settings.app_version,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)

app.include_router(summaries_router)
app.include_router(users_router)
app.include_router(webhooks_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses for monitoring.
    """
    start_time = time.time()
    request_id = f"req_{int(start_time * 1000)}"
    request.state.request_id = request_id

    logger.info(f"[{request_id}] Incoming request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"[{request_id}] Response: {response.status_code} "
                f"- Processing time: {process_time:.3f}s")

    response.headers["X-Process-Time"] = f"{process_time:.3f}"
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError):
    """Infrastructure failures surface as 503 so clients can retry."""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(f"[{request_id}] Database error: {exc.message}")

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": exc.error_code or "DATABASE_ERROR",
            "message": "The service is temporarily unavailable. Please try again.",
            "recovery_suggestion": exc.recovery_suggestion,
        }
    )


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint with database status."""
    db_health = check_database_health()
    orchestrator_ready = getattr(app.state, 'orchestrator', None) is not None

    overall_status = "healthy"
    if db_health.get("status") != "healthy":
        overall_status = "degraded"
    if not orchestrator_ready:
        overall_status = "unhealthy"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "uptime_seconds": round(time.time() - app_start_time, 3) if app_start_time else 0,
        "components": {
            "orchestrator": {
                "status": "healthy" if orchestrator_ready else "unhealthy",
                "pipeline": settings.summary_pipeline_mode,
            },
            "database": {
                "status": db_health.get("status", "unknown"),
                "response_time_ms": db_health.get("response_time_ms"),
            }
        }
    }


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "description": "Asynchronous AI-powered YouTube video summary service",
        "endpoints": {
            "create_summary": "/api/v1/summaries",
            "list_summaries": "/api/v1/summaries",
            "recent_summaries": "/api/v1/summaries/recent",
            "summary_status": "/api/v1/summaries/{job_id}/status",
            "summary_detail": "/api/v1/summaries/{job_id}",
            "credits": "/api/v1/users/me/credits",
            "plans": "/api/v1/plans",
            "billing_webhook": "/api/v1/webhooks/billing",
            "health": "/health",
            "docs": "/api/docs"
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


# Development server runner
if __name__ == "__main__":
    run(
        "tubedigest.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.workers,
        log_level=settings.log_level
    )
