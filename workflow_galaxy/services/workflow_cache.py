"""
Decides per request whether workflows come from the durable cache or the
remote source, and keeps the cache populated.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol, Set

from workflow_galaxy.core.exceptions import CacheReadError
from workflow_galaxy.schemas.workflow import WorkflowMetadata
from workflow_galaxy.services.cache_store import WorkflowCacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class WorkflowSource(str, Enum):
    CACHE = "cache"
    REMOTE = "remote"
    REMOTE_DIRECT = "remote-direct"


class WorkflowFetcher(Protocol):
    async def fetch_all(self) -> List[WorkflowMetadata]: ...


@dataclass
class WorkflowResult:
    workflows: List[WorkflowMetadata]
    source: WorkflowSource


class WorkflowCacheCoordinator:
    def __init__(
        self,
        fetcher: WorkflowFetcher,
        store: Optional[WorkflowCacheStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.fetcher = fetcher
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._pending_writes: Set[asyncio.Task] = set()

    @property
    def cache_enabled(self) -> bool:
        return self.store is not None

    def is_expired(self, last_updated: Optional[datetime]) -> bool:
        if last_updated is None:
            return True
        return (self.clock() - last_updated).total_seconds() > self.ttl_seconds

    async def get_workflows(self) -> WorkflowResult:
        if self.store is None:
            return WorkflowResult(await self.fetcher.fetch_all(), WorkflowSource.REMOTE_DIRECT)

        cached = await self._read_fresh_cache()
        # An empty fresh cache counts as a miss too.
        if cached:
            logger.info("Serving %s workflows from cache", len(cached))
            return WorkflowResult(cached, WorkflowSource.CACHE)

        workflows = await self.fetcher.fetch_all()
        self._schedule_write(workflows)
        return WorkflowResult(workflows, WorkflowSource.REMOTE)

    async def refresh(self) -> WorkflowResult:
        """Fetch from the remote source and wait for the cache write to finish."""
        workflows = await self.fetcher.fetch_all()
        if self.store is None:
            return WorkflowResult(workflows, WorkflowSource.REMOTE_DIRECT)
        await self.store.upsert(workflows)
        logger.info("Cache refreshed with %s workflows", len(workflows))
        return WorkflowResult(workflows, WorkflowSource.REMOTE)

    async def wait_for_pending_writes(self) -> None:
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    async def _read_fresh_cache(self) -> List[WorkflowMetadata]:
        try:
            last_updated = await self.store.latest_timestamp()
            if self.is_expired(last_updated):
                logger.info("Workflow cache expired (last updated %s)", last_updated)
                return []
            return await self.store.query_all()
        except CacheReadError as exc:
            logger.warning("Cache read failed, falling back to remote source: %s", exc)
            return []

    def _schedule_write(self, workflows: List[WorkflowMetadata]) -> None:
        task = asyncio.create_task(self._write_in_background(workflows))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_in_background(self, workflows: List[WorkflowMetadata]) -> None:
        try:
            await self.store.upsert(workflows)
        except Exception as exc:
            logger.exception("Cache update failed: %s", exc)
