"""Shared fixtures: a fake clock, an initialized store and a service bound to both."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from portfolio_events.checkpoint import MemoryCheckpointStore
from portfolio_events.db import RecordStore
from portfolio_events.service import NotificationService


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
async def store(tmp_path: Path, clock: FakeClock) -> RecordStore:  # type: ignore[misc]
    record_store = RecordStore(db_path=tmp_path / "records.db", clock=clock)
    await record_store.init()
    yield record_store  # type: ignore[misc]
    await record_store.close()


@pytest.fixture
def service(store: RecordStore, clock: FakeClock) -> NotificationService:
    return NotificationService(store, clock=clock)


@pytest.fixture
def checkpoints() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()
