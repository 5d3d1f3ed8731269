"""Best-effort periodic checks that run only while a session is alive.

Each check kind owns one asyncio task: wait a short debounce delay, check
whether the kind is due against its checkpoint, run it if so, sleep one
period, repeat. Stopping cancels the timer tasks but never an in-flight run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable

import structlog

from portfolio_events.checkpoint import CheckpointStore
from portfolio_events.config import MilestoneSettings, SchedulerSettings
from portfolio_events.constants import DAILY_SUMMARY_CHECKPOINT, PERFORMANCE_CHECK_CHECKPOINT
from portfolio_events.dates import ensure_utc, local_now, parse_iso_datetime
from portfolio_events.detector import check_performance_milestones, run_daily_summary
from portfolio_events.service import NotificationService

logger = structlog.get_logger(__name__)


@dataclass
class PeriodicCheck:
    name: str
    interval: float
    is_due: Callable[[datetime], bool]
    run: Callable[[datetime], Awaitable[object]]
    mark_done: Callable[[datetime], None]


class NotificationScheduler:
    def __init__(
        self,
        service: NotificationService,
        checkpoints: CheckpointStore,
        *,
        settings: SchedulerSettings | None = None,
        milestones: MilestoneSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._service = service
        self._checkpoints = checkpoints
        self._settings = settings or SchedulerSettings()
        self._milestones = milestones or MilestoneSettings()
        self._clock = clock or local_now
        self._timers: list[asyncio.Task[None]] = []
        self._in_flight: set[asyncio.Task[None]] = set()
        self.checks = [
            PeriodicCheck(
                name="daily-summary",
                interval=self._settings.daily_interval_s,
                is_due=self._daily_due,
                run=self._run_daily,
                mark_done=self._mark_daily,
            ),
            PeriodicCheck(
                name="performance",
                interval=self._settings.performance_interval_s,
                is_due=self._performance_due,
                run=self._run_performance,
                mark_done=self._mark_performance,
            ),
        ]

    @property
    def running(self) -> bool:
        return bool(self._timers)

    def start(self) -> None:
        if self._timers:
            return
        for check in self.checks:
            self._timers.append(asyncio.create_task(self._loop(check), name=f"notification-check:{check.name}"))
        logger.info("NotificationScheduler started", checks=[c.name for c in self.checks])

    async def stop(self) -> None:
        """Cancel pending timers. Checks already running are left to finish."""
        timers, self._timers = self._timers, []
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        logger.info("NotificationScheduler stopped", in_flight=len(self._in_flight))

    async def drain(self) -> None:
        """Wait for in-flight checks to complete."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def run_due_checks(self) -> None:
        for check in self.checks:
            await self._check(check)

    async def _loop(self, check: PeriodicCheck) -> None:
        await asyncio.sleep(self._settings.initial_delay_s)
        while True:
            try:
                await self._check(check)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("scheduler loop error", check=check.name)
            await asyncio.sleep(check.interval)

    async def _check(self, check: PeriodicCheck) -> None:
        now = self._clock()
        if not check.is_due(now):
            logger.debug("check not due", check=check.name)
            return
        task = asyncio.create_task(self._run(check, now), name=f"notification-run:{check.name}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        await asyncio.shield(task)

    async def _run(self, check: PeriodicCheck, now: datetime) -> None:
        try:
            await check.run(now)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("periodic check failed", check=check.name)
        try:
            check.mark_done(now)
        except OSError:
            logger.exception("failed to write checkpoint", check=check.name)

    # Daily summary

    def _daily_due(self, now: datetime) -> bool:
        return self._checkpoints.get(DAILY_SUMMARY_CHECKPOINT) != now.date().isoformat()

    async def _run_daily(self, now: datetime) -> None:
        await run_daily_summary(self._service, self._checkpoints, now)

    def _mark_daily(self, now: datetime) -> None:
        self._checkpoints.set(DAILY_SUMMARY_CHECKPOINT, now.date().isoformat())

    # Hourly performance

    def _performance_due(self, now: datetime) -> bool:
        last = parse_iso_datetime(self._checkpoints.get(PERFORMANCE_CHECK_CHECKPOINT))
        if last is None:
            return True
        return ensure_utc(now) - last >= timedelta(seconds=self._settings.performance_interval_s)

    async def _run_performance(self, now: datetime) -> None:
        await check_performance_milestones(
            self._service,
            total_view_milestones=self._milestones.total_views,
            published_project_milestones=self._milestones.published_projects,
        )

    def _mark_performance(self, now: datetime) -> None:
        self._checkpoints.set(PERFORMANCE_CHECK_CHECKPOINT, now.isoformat())
