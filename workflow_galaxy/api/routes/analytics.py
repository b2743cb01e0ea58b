"""
Analytics API Routes
Workflow view/click/download tracking stored next to the cache.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from workflow_galaxy.api.dependencies import error_response, get_cache_store, success_response
from workflow_galaxy.core.exceptions import CacheNotConfiguredError
from workflow_galaxy.schemas.workflow import AnalyticsEventCreate
from workflow_galaxy.services.cache_store import WorkflowCacheStore

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_CONFIGURED = CacheNotConfiguredError("Analytics storage is not configured")


@router.post("/events")
async def log_event(
    event: AnalyticsEventCreate,
    store: Optional[WorkflowCacheStore] = Depends(get_cache_store),
) -> JSONResponse:
    if store is None:
        return error_response(NOT_CONFIGURED, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    try:
        await store.log_event(event)
    except Exception as exc:
        logger.exception("Error logging analytics: %s", exc)
        return error_response(exc, "Failed to log analytics event")
    return success_response(
        status_code=status.HTTP_201_CREATED,
        data=event.model_dump(mode="json", by_alias=True),
    )


@router.get("/stats")
async def workflow_stats(
    store: Optional[WorkflowCacheStore] = Depends(get_cache_store),
) -> JSONResponse:
    """View counts per workflow id."""
    if store is None:
        return error_response(NOT_CONFIGURED, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    try:
        counts = await store.view_counts()
    except Exception as exc:
        logger.exception("Failed to build workflow stats: %s", exc)
        return error_response(exc, "Failed to load workflow stats")
    return success_response(data=counts, count=len(counts))
