"""
Workflow Galaxy - FastAPI Application
Serves n8n workflow metadata and 3D positions for the dashboard.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from workflow_galaxy.api.dependencies import error_response
from workflow_galaxy.api.routes import analytics, health, workflows
from workflow_galaxy.config import settings
from workflow_galaxy.database import get_session_factory, init_db
from workflow_galaxy.integrations.workflow_source import WorkflowSourceClient
from workflow_galaxy.services.cache_store import WorkflowCacheStore
from workflow_galaxy.services.workflow_cache import WorkflowCacheCoordinator

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    store = None
    if settings.cache_configured:
        try:
            init_db()
            logger.info("Workflow cache tables ready")
        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
        store = WorkflowCacheStore(get_session_factory())
    else:
        logger.info("No cache database configured; serving workflows directly from source")

    source = WorkflowSourceClient(settings)
    coordinator = WorkflowCacheCoordinator(source, store, ttl_seconds=settings.cache_ttl_seconds)
    app.state.source_client = source
    app.state.cache_store = store
    app.state.coordinator = coordinator
    logger.info(f"API running on {settings.app_env} environment")
    yield
    await coordinator.wait_for_pending_writes()
    await source.close()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Workflow ingestion, caching and galaxy layout API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return error_response(errors, "Invalid request", status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(health.router, prefix=settings.api_prefix, tags=["Health"])
app.include_router(workflows.router, prefix=settings.api_prefix, tags=["Workflows"])
app.include_router(
    analytics.router, prefix=f"{settings.api_prefix}/analytics", tags=["Analytics"]
)
