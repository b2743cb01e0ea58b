from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta

import pytest

from conftest import FIXED_NOW, make_workflow
from workflow_galaxy.core.exceptions import CacheReadError, CacheWriteError, RemoteListingError
from workflow_galaxy.services.cache_store import WorkflowCacheStore
from workflow_galaxy.services.workflow_cache import WorkflowCacheCoordinator, WorkflowSource

TTL_SECONDS = 300


class CountingFetcher:
    def __init__(self, workflows=None, error: Exception | None = None):
        self.workflows = workflows if workflows is not None else [make_workflow("remote-1", name="Remote")]
        self.error = error
        self.calls = 0

    async def fetch_all(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.workflows)


class StubStore:
    def __init__(self, cached=None, last_updated=None, read_error=None, write_error=None):
        self.cached = cached or []
        self.last_updated = last_updated
        self.read_error = read_error
        self.write_error = write_error
        self.upserts = []
        self.release = None

    async def latest_timestamp(self):
        if self.read_error:
            raise self.read_error
        return self.last_updated

    async def query_all(self):
        if self.read_error:
            raise self.read_error
        return list(self.cached)

    async def upsert(self, workflows):
        if self.release is not None:
            await self.release.wait()
        if self.write_error:
            raise self.write_error
        self.upserts.append(list(workflows))
        return len(workflows)


def coordinator_for(fetcher, store, age_seconds=None):
    return WorkflowCacheCoordinator(
        fetcher,
        store,
        ttl_seconds=TTL_SECONDS,
        clock=lambda: FIXED_NOW if age_seconds is None else FIXED_NOW + timedelta(seconds=age_seconds),
    )


@pytest.mark.asyncio
async def test_no_cache_configured_fetches_directly():
    fetcher = CountingFetcher()
    coordinator = WorkflowCacheCoordinator(fetcher)

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.REMOTE_DIRECT
    assert [w.id for w in result.workflows] == ["remote-1"]
    assert fetcher.calls == 1
    assert coordinator.cache_enabled is False


@pytest.mark.asyncio
async def test_fresh_cache_hit_never_calls_fetcher():
    fetcher = CountingFetcher()
    store = StubStore(cached=[make_workflow("cached-1")], last_updated=FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=60)

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.CACHE
    assert [w.id for w in result.workflows] == ["cached-1"]
    assert fetcher.calls == 0
    assert store.upserts == []


@pytest.mark.asyncio
async def test_expired_cache_fetches_once_and_reports_remote():
    fetcher = CountingFetcher()
    store = StubStore(cached=[make_workflow("cached-1")], last_updated=FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=TTL_SECONDS + 1)

    result = await coordinator.get_workflows()
    await coordinator.wait_for_pending_writes()

    assert result.source == WorkflowSource.REMOTE
    assert fetcher.calls == 1
    assert [w.id for w in result.workflows] == ["remote-1"]
    assert [[w.id for w in batch] for batch in store.upserts] == [["remote-1"]]


@pytest.mark.asyncio
async def test_cache_exactly_at_window_is_still_fresh():
    fetcher = CountingFetcher()
    store = StubStore(cached=[make_workflow("cached-1")], last_updated=FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=TTL_SECONDS)

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.CACHE
    assert fetcher.calls == 0


@pytest.mark.asyncio
async def test_empty_cache_is_a_miss():
    fetcher = CountingFetcher()
    coordinator = coordinator_for(fetcher, StubStore(last_updated=None))

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.REMOTE
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_fresh_timestamp_with_no_rows_is_a_miss():
    fetcher = CountingFetcher()
    store = StubStore(cached=[], last_updated=FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=10)

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.REMOTE
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_cache_read_error_falls_back_to_remote():
    fetcher = CountingFetcher()
    store = StubStore(read_error=CacheReadError("connection refused"))
    coordinator = coordinator_for(fetcher, store)

    result = await coordinator.get_workflows()

    assert result.source == WorkflowSource.REMOTE
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_miss_does_not_wait_for_cache_write():
    fetcher = CountingFetcher()
    store = StubStore()
    store.release = asyncio.Event()
    coordinator = coordinator_for(fetcher, store)

    result = await asyncio.wait_for(coordinator.get_workflows(), timeout=1)

    assert result.source == WorkflowSource.REMOTE
    assert store.upserts == []

    store.release.set()
    await coordinator.wait_for_pending_writes()
    assert len(store.upserts) == 1


@pytest.mark.asyncio
async def test_background_write_failure_is_logged_only(caplog):
    fetcher = CountingFetcher()
    store = StubStore(write_error=CacheWriteError("disk full"))
    coordinator = coordinator_for(fetcher, store)

    with caplog.at_level(logging.ERROR, logger="workflow_galaxy.services.workflow_cache"):
        result = await coordinator.get_workflows()
        await coordinator.wait_for_pending_writes()

    assert [w.id for w in result.workflows] == ["remote-1"]
    assert "Cache update failed" in caplog.text


@pytest.mark.asyncio
async def test_listing_error_propagates_on_miss():
    fetcher = CountingFetcher(error=RemoteListingError("rate limited", status_code=403))
    coordinator = coordinator_for(fetcher, StubStore())

    with pytest.raises(RemoteListingError):
        await coordinator.get_workflows()


@pytest.mark.asyncio
async def test_refresh_ignores_freshness_and_awaits_write():
    fetcher = CountingFetcher()
    store = StubStore(cached=[make_workflow("cached-1")], last_updated=FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=1)

    result = await coordinator.refresh()

    assert result.source == WorkflowSource.REMOTE
    assert fetcher.calls == 1
    assert [[w.id for w in batch] for batch in store.upserts] == [["remote-1"]]


@pytest.mark.asyncio
async def test_refresh_surfaces_write_failure():
    store = StubStore(write_error=CacheWriteError("disk full"))
    coordinator = coordinator_for(CountingFetcher(), store)

    with pytest.raises(CacheWriteError):
        await coordinator.refresh()


@pytest.mark.asyncio
async def test_refresh_without_cache():
    fetcher = CountingFetcher()
    result = await WorkflowCacheCoordinator(fetcher).refresh()
    assert result.source == WorkflowSource.REMOTE_DIRECT
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_round_trip_through_sqlite_store(session_factory):
    fetcher = CountingFetcher(workflows=[make_workflow("wf-1", name="Data Sync")])
    store = WorkflowCacheStore(session_factory, clock=lambda: FIXED_NOW)
    coordinator = coordinator_for(fetcher, store, age_seconds=30)

    first = await coordinator.get_workflows()
    await coordinator.wait_for_pending_writes()
    second = await coordinator.get_workflows()

    assert first.source == WorkflowSource.REMOTE
    assert second.source == WorkflowSource.CACHE
    assert [w.id for w in second.workflows] == ["wf-1"]
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_slow_cache_write_leaves_event_loop_responsive(session_factory):
    def slow_session():
        db = session_factory()
        merge = db.merge

        def slow_merge(instance, **kwargs):
            time.sleep(0.5)
            return merge(instance, **kwargs)

        db.merge = slow_merge
        return db

    fetcher = CountingFetcher()
    store = WorkflowCacheStore(slow_session, clock=lambda: FIXED_NOW)
    coordinator = coordinator_for(fetcher, store)
    loop = asyncio.get_running_loop()

    result = await coordinator.get_workflows()
    started = loop.time()
    await asyncio.sleep(0.01)
    elapsed = loop.time() - started

    assert result.source == WorkflowSource.REMOTE
    assert elapsed < 0.2

    await coordinator.wait_for_pending_writes()
    assert [w.id for w in await store.query_all()] == ["remote-1"]
