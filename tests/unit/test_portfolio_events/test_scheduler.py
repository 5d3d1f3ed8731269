"""Tests for the periodic notification scheduler."""

from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from portfolio_events.checkpoint import MemoryCheckpointStore
from portfolio_events.config import SchedulerSettings
from portfolio_events.constants import DAILY_SUMMARY_CHECKPOINT, PERFORMANCE_CHECK_CHECKPOINT
from portfolio_events.db import RecordStore, RecordStoreError
from portfolio_events.scheduler import NotificationScheduler, PeriodicCheck
from portfolio_events.service import NotificationService

from .conftest import FakeClock


def _scheduler(
    service: NotificationService,
    checkpoints: MemoryCheckpointStore,
    clock: FakeClock,
    **settings: float,
) -> NotificationScheduler:
    return NotificationScheduler(service, checkpoints, settings=SchedulerSettings(**settings), clock=clock)


async def _categories(store: RecordStore) -> list[str]:
    return [d["category"] for d in await store.query_ordered("notifications", "createdAt", "asc")]


@pytest.mark.asyncio
async def test_run_due_checks_runs_both_kinds(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    await service.store.insert("projects", {"title": "A", "views": 1200, "published": True})

    await _scheduler(service, checkpoints, clock).run_due_checks()

    assert await _categories(service.store) == ["summary", "performance"]
    assert checkpoints.get(DAILY_SUMMARY_CHECKPOINT) == "2026-10-19"
    assert checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT) == clock.now.isoformat()


@pytest.mark.asyncio
async def test_checks_not_due_do_nothing(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    scheduler = _scheduler(service, checkpoints, clock)
    await scheduler.run_due_checks()
    before = checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT)

    clock.advance(minutes=30)
    await scheduler.run_due_checks()

    assert checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT) == before
    assert await _categories(service.store) == ["summary"]


@pytest.mark.asyncio
async def test_later_runs_do_not_duplicate(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    await service.store.insert("projects", {"title": "A", "views": 1200, "published": True})
    scheduler = _scheduler(service, checkpoints, clock)
    await scheduler.run_due_checks()

    clock.advance(hours=2)
    await scheduler.run_due_checks()

    assert await _categories(service.store) == ["summary", "performance"]
    assert checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT) == clock.now.isoformat()


@pytest.mark.asyncio
async def test_two_sessions_share_one_summary(service: NotificationService, clock: FakeClock) -> None:
    await _scheduler(service, MemoryCheckpointStore(), clock).run_due_checks()
    await _scheduler(service, MemoryCheckpointStore(), clock).run_due_checks()
    assert (await _categories(service.store)).count("summary") == 1


@pytest.mark.asyncio
async def test_failing_check_is_logged_and_checkpoint_advances(
    service: NotificationService,
    checkpoints: MemoryCheckpointStore,
    clock: FakeClock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(service.store, "query_ordered", AsyncMock(side_effect=RecordStoreError("offline")))

    await _scheduler(service, checkpoints, clock).run_due_checks()

    assert checkpoints.get(DAILY_SUMMARY_CHECKPOINT) == "2026-10-19"
    assert checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT) == clock.now.isoformat()


@pytest.mark.asyncio
async def test_unparsable_performance_checkpoint_is_due(
    service: NotificationService, clock: FakeClock
) -> None:
    checkpoints = MemoryCheckpointStore({PERFORMANCE_CHECK_CHECKPOINT: "garbage"})
    await _scheduler(service, checkpoints, clock).run_due_checks()
    assert checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT) == clock.now.isoformat()


@pytest.mark.asyncio
async def test_start_runs_checks_after_initial_delay(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    scheduler = _scheduler(service, checkpoints, clock, initial_delay_s=0)
    scheduler.start()
    assert scheduler.running
    try:
        for _ in range(100):
            if checkpoints.get(DAILY_SUMMARY_CHECKPOINT) and checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT):
                break
            await asyncio.sleep(0.005)
    finally:
        await scheduler.stop()
        await scheduler.drain()

    assert not scheduler.running
    assert await _categories(service.store) == ["summary"]


@pytest.mark.asyncio
async def test_stop_before_initial_delay_runs_nothing(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    scheduler = _scheduler(service, checkpoints, clock, initial_delay_s=60)
    scheduler.start()
    await asyncio.sleep(0)
    await scheduler.stop()

    assert checkpoints.get(DAILY_SUMMARY_CHECKPOINT) is None
    assert await _categories(service.store) == []


@pytest.mark.asyncio
async def test_start_twice_keeps_one_timer_per_check(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    scheduler = _scheduler(service, checkpoints, clock, initial_delay_s=60)
    scheduler.start()
    scheduler.start()
    assert len(scheduler._timers) == 2  # pylint: disable=protected-access
    await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_does_not_cancel_in_flight_run(
    service: NotificationService, checkpoints: MemoryCheckpointStore, clock: FakeClock
) -> None:
    started = asyncio.Event()
    release = asyncio.Event()
    finished: list[datetime] = []

    async def slow_run(now: datetime) -> None:
        started.set()
        await release.wait()
        finished.append(now)

    scheduler = _scheduler(service, checkpoints, clock, initial_delay_s=0)
    scheduler.checks = [
        PeriodicCheck(
            name="slow",
            interval=3600,
            is_due=lambda now: True,
            run=slow_run,
            mark_done=lambda now: checkpoints.set("slow", now.isoformat()),
        )
    ]
    scheduler.start()
    await asyncio.wait_for(started.wait(), timeout=0.5)
    await scheduler.stop()

    release.set()
    await scheduler.drain()

    assert finished == [clock.now]
    assert checkpoints.get("slow") == clock.now.isoformat()
