"""
Health API Routes
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from workflow_galaxy.config import settings
from workflow_galaxy.database import database_health

router = APIRouter()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Application and cache database health"""
    if not settings.cache_configured:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "healthy", "cache": "disabled", "database": {"ok": False, "configured": False}},
        )

    db = await run_in_threadpool(database_health)
    ok = bool(db.get("ok"))
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "cache": "enabled",
            "database": db,
        },
    )
