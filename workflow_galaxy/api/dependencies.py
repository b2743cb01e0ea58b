"""Shared API dependencies and response envelopes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from workflow_galaxy.services.cache_store import WorkflowCacheStore
from workflow_galaxy.services.workflow_cache import WorkflowCacheCoordinator


def get_coordinator(request: Request) -> WorkflowCacheCoordinator:
    return request.app.state.coordinator


def get_cache_store(request: Request) -> Optional[WorkflowCacheStore]:
    return getattr(request.app.state, "cache_store", None)


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(status_code: int = status.HTTP_200_OK, **payload: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, **payload, "timestamp": timestamp()},
    )


def error_response(
    error: Exception | str,
    fallback: str = "Request failed",
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
) -> JSONResponse:
    message = str(error) or fallback
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "timestamp": timestamp()},
    )
