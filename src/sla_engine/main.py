"""
SLA Engine - Main Application
=============================

HTTP facade for the SLA tracking and notification delivery engine.

Modules:
- SLA Tracking: Policies, evaluation, breach bookkeeping
- Notifications: Scheme, event queue, digests, automation runs

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: In-memory ledgers, YAML config, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from sla_engine.config import settings
from sla_engine.core import ApplicationException

# Engine
from sla_engine.container import EngineContainer
from sla_engine.sla.infrastructure import SLAConfigManager
from sla_engine.shared.infrastructure.scheduler import EngineScheduler

# Module Routers
from sla_engine.sla.interfaces import sla_router
from sla_engine.notifications.interfaces import notifications_router

# Middleware
from sla_engine.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)

# Logging
from sla_engine.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load SLA configuration and watch it for changes
    3. Build the engine container
    4. Start the engine scheduler (unless the tick interval is 0)

    SHUTDOWN:
    1. Stop the engine scheduler
    2. Stop the config watcher
    3. Dispose engine state
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Loading SLA configuration", extra={"path": str(settings.sla_config_path)})
    config_manager = SLAConfigManager()
    config_manager.load(settings.sla_config_path)
    config_manager.start_watching()

    container = EngineContainer(config_provider=config_manager, settings=settings)

    scheduler = None
    if settings.engine_tick_interval > 0:
        scheduler = EngineScheduler(interval_seconds=settings.engine_tick_interval)
        await scheduler.start(container.tick)
    else:
        logger.info("Engine scheduler disabled")

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.config_manager = config_manager
    app.state.container = container
    app.state.scheduler = scheduler

    logger.info("SLA engine started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SLA engine")

    if scheduler:
        await scheduler.stop()

    config_manager.stop_watching()
    container.dispose()

    logger.info("SLA engine shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="SLA Engine API",
    description="""
    ## SLA Tracking & Notification Delivery Engine

    Re-evaluates service-level targets against project tasks and schedules,
    batches and idempotently delivers the resulting notifications.

    ---

    ### SLA Tracking

    - `GET|POST /projects/{project_id}/sla/policies` - List / upsert policies
    - `POST /projects/{project_id}/sla/evaluate` - Evaluate task snapshots
    - `GET /projects/{project_id}/sla/snapshot` - Last health snapshot
    - `GET /projects/{project_id}/sla/breaches` - Breach log

    ### Notifications

    - `GET /projects/{project_id}/notifications/scheme` - Delivery scheme
    - `POST /projects/{project_id}/notifications/events` - Queue an event
    - `POST /projects/{project_id}/notifications/process` - Drain due events and send digests
    - `GET /projects/{project_id}/notifications/deliveries` - Delivery log
    - `GET /projects/{project_id}/notifications/digest-summary` - Digest dashboard

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
# Added last runs first, so the correlation id exists before request logging
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(sla_router)
app.include_router(notifications_router)

# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "sla_config": "loaded (2 default policies)",
                        "engine_scheduler": "running",
                        "projects": 3
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - SLA configuration status
    - Scheduler state
    - Number of projects holding state
    """
    container = getattr(request.app.state, "container", None)
    scheduler = getattr(request.app.state, "scheduler", None)

    checks = {
        "sla_config": "not_loaded",
        "engine_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        "projects": 0,
    }

    if container is not None:
        config = container.config_provider.get_config()
        checks["sla_config"] = f"loaded ({len(config.default_policies)} default policies)"
        checks["projects"] = len(
            set(container.sla_repository.project_ids())
            | set(container.notification_repository.project_ids())
        )

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "SLA Engine",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "sla_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
