"""
Durable workflow cache backed by SQLAlchemy.
Rows are upserted by workflow id; freshness is judged from the newest updated_at.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from workflow_galaxy.core.exceptions import CacheReadError, CacheWriteError
from workflow_galaxy.models import AnalyticsEvent, WorkflowCache
from workflow_galaxy.schemas.workflow import AnalyticsEventCreate, WorkflowMetadata

logger = logging.getLogger(__name__)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def row_to_metadata(row: WorkflowCache) -> WorkflowMetadata:
    return WorkflowMetadata(
        id=row.id,
        name=row.name,
        description=row.description or "",
        node_count=row.node_count or 0,
        node_types=list(row.node_types or []),
        category=row.category,
        source_url=row.source_url,
        content_url=row.content_url,
        size=row.size or 0,
        last_updated=as_utc(row.updated_at),
    )


class WorkflowCacheStore:
    """Coroutine facade over blocking session work, which runs in the threadpool."""

    def __init__(self, session_factory: Callable[[], Session], clock: Callable[[], datetime] | None = None):
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def upsert(self, workflows: Sequence[WorkflowMetadata]) -> int:
        if not workflows:
            return 0
        count = await run_in_threadpool(self._upsert, list(workflows), self.clock())
        logger.debug("Cached %s workflows", count)
        return count

    async def query_all(self) -> list[WorkflowMetadata]:
        return await run_in_threadpool(self._query_all)

    async def latest_timestamp(self) -> datetime | None:
        return await run_in_threadpool(self._latest_timestamp)

    async def log_event(self, event: AnalyticsEventCreate) -> None:
        await run_in_threadpool(self._log_event, event)

    async def view_counts(self) -> dict[str, int]:
        return await run_in_threadpool(self._view_counts)

    def _upsert(self, workflows: list[WorkflowMetadata], updated_at: datetime) -> int:
        db = self.session_factory()
        try:
            for workflow in workflows:
                db.merge(
                    WorkflowCache(
                        id=workflow.id,
                        name=workflow.name,
                        description=workflow.description,
                        node_count=workflow.node_count,
                        node_types=list(workflow.node_types),
                        category=workflow.category.value,
                        source_url=workflow.source_url,
                        content_url=workflow.content_url,
                        size=workflow.size,
                        sha=workflow.id,
                        updated_at=updated_at,
                    )
                )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise CacheWriteError(f"Error caching workflows: {exc}") from exc
        finally:
            db.close()
        return len(workflows)

    def _query_all(self) -> list[WorkflowMetadata]:
        db = self.session_factory()
        try:
            rows = db.query(WorkflowCache).order_by(WorkflowCache.name).all()
            return [row_to_metadata(row) for row in rows]
        except SQLAlchemyError as exc:
            raise CacheReadError(f"Error fetching cached workflows: {exc}") from exc
        finally:
            db.close()

    def _latest_timestamp(self) -> datetime | None:
        db = self.session_factory()
        try:
            return as_utc(db.query(func.max(WorkflowCache.updated_at)).scalar())
        except SQLAlchemyError as exc:
            raise CacheReadError(f"Error reading cache metadata: {exc}") from exc
        finally:
            db.close()

    def _log_event(self, event: AnalyticsEventCreate) -> None:
        db = self.session_factory()
        try:
            db.add(
                AnalyticsEvent(
                    workflow_id=event.workflow_id,
                    event_type=event.event_type,
                    meta=event.metadata,
                )
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise CacheWriteError(f"Error logging analytics: {exc}") from exc
        finally:
            db.close()

    def _view_counts(self) -> dict[str, int]:
        db = self.session_factory()
        try:
            rows = (
                db.query(AnalyticsEvent.workflow_id)
                .filter(AnalyticsEvent.event_type == "view")
                .all()
            )
        except SQLAlchemyError as exc:
            raise CacheReadError(f"Error reading analytics: {exc}") from exc
        finally:
            db.close()
        return dict(Counter(row.workflow_id for row in rows))
