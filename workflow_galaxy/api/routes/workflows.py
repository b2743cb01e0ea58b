"""
Workflow API Routes
GET returns positioned workflows through the cache; POST forces a refresh.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from workflow_galaxy.api.dependencies import error_response, get_coordinator, success_response
from workflow_galaxy.schemas.workflow import WorkflowCategory, WorkflowMetadata
from workflow_galaxy.services.galaxy_layout import calculate_galaxy_positions, calculate_grid_positions
from workflow_galaxy.services.workflow_cache import WorkflowCacheCoordinator

logger = logging.getLogger(__name__)
router = APIRouter()

ViewMode = Literal["galaxy", "technical"]


def arrange(workflows: list[WorkflowMetadata], view: ViewMode = "galaxy") -> list[WorkflowMetadata]:
    if view == "technical":
        return calculate_grid_positions(workflows)
    return calculate_galaxy_positions(workflows)


@router.get("/workflows")
async def list_workflows(
    category: Optional[WorkflowCategory] = None,
    view: ViewMode = "galaxy",
    coordinator: WorkflowCacheCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    try:
        result = await coordinator.get_workflows()
        # Position the full set first so a filter never moves cards.
        positioned = arrange(result.workflows, view)
        if category is not None:
            positioned = [w for w in positioned if w.category == category]
        return success_response(
            data=[w.to_response() for w in positioned],
            count=len(positioned),
            source=result.source.value,
            cacheConnected=coordinator.cache_enabled,
        )
    except Exception as exc:
        logger.exception("Error fetching workflows: %s", exc)
        return error_response(exc, "Failed to fetch workflows")


@router.post("/workflows")
async def refresh_workflows(
    coordinator: WorkflowCacheCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    try:
        result = await coordinator.refresh()
        positioned = calculate_galaxy_positions(result.workflows)
        return success_response(
            message="Cache refreshed",
            data=[w.to_response() for w in positioned],
            count=len(positioned),
            source=result.source.value,
            cacheConnected=coordinator.cache_enabled,
        )
    except Exception as exc:
        logger.exception("Manual cache refresh failed: %s", exc)
        return error_response(exc, "Failed to refresh cache")


@router.get("/workflows/{workflow_id}")
async def workflow_detail(
    workflow_id: str,
    coordinator: WorkflowCacheCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    try:
        result = await coordinator.get_workflows()
        positioned = calculate_galaxy_positions(result.workflows)
    except Exception as exc:
        logger.exception("Error fetching workflow %s: %s", workflow_id, exc)
        return error_response(exc, "Failed to fetch workflow")

    match = next((w for w in positioned if w.id == workflow_id), None)
    if match is None:
        return error_response("Workflow not found", status_code=status.HTTP_404_NOT_FOUND)
    return success_response(data=match.to_response(), source=result.source.value)
