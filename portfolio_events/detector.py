"""Milestone and threshold detection: decides whether a notification should fire."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable

import structlog

from portfolio_events.checkpoint import CheckpointStore
from portfolio_events.constants import (
    DAILY_SUMMARY_CHECKPOINT,
    MESSAGES_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    PROJECTS_COLLECTION,
    PUBLISHED_PROJECT_MILESTONES,
    PUBLISHED_PROJECTS_LABEL,
    PUBLISHED_PROJECTS_METRIC,
    TOTAL_VIEW_MILESTONES,
    TOTAL_VIEWS_LABEL,
    TOTAL_VIEWS_METRIC,
    VIEW_MILESTONES,
)
from portfolio_events.dates import start_of_day
from portfolio_events.db import RecordStore
from portfolio_events.envelope import ActivitySummary, NotificationCategory, NotificationRecord, TopProject

if TYPE_CHECKING:
    from portfolio_events.service import NotificationService

logger = structlog.get_logger(__name__)


def is_view_milestone(view_count: int, milestones: Iterable[int] = VIEW_MILESTONES) -> bool:
    """Exact membership: a count that jumps past a milestone does not fire it."""
    return view_count in tuple(milestones)


def crossed_milestones(value: int | float, milestones: Iterable[int]) -> list[int]:
    return [m for m in milestones if value >= m]


def _views(project: dict[str, Any]) -> int:
    return int(project.get("views") or 0)


async def summary_exists_for_day(store: RecordStore, day: date, period: str = "daily") -> bool:
    existing = await store.query_by_equality(
        NOTIFICATIONS_COLLECTION,
        [
            ("category", NotificationCategory.SUMMARY.value),
            ("metadata.period", period),
            ("metadata.day", day.isoformat()),
        ],
    )
    return bool(existing)


async def performance_alert_exists(store: RecordStore, metric: str, value: int | float) -> bool:
    existing = await store.query_by_equality(
        NOTIFICATIONS_COLLECTION,
        [
            ("category", NotificationCategory.PERFORMANCE.value),
            ("metadata.metric", metric),
            ("metadata.value", value),
        ],
    )
    return bool(existing)


async def collect_activity(store: RecordStore, since: datetime) -> ActivitySummary:
    """Aggregate project views and messages received since `since`."""
    messages = await store.query_by_equality(MESSAGES_COLLECTION, since=since)
    projects = await store.query_ordered(PROJECTS_COLLECTION, "createdAt", "asc")

    top: dict[str, Any] | None = None
    for project in projects:
        if _views(project) > (_views(top) if top else 0):
            top = project

    return ActivitySummary(
        total_views=sum(_views(p) for p in projects),
        new_messages=len(messages),
        top_project=(
            TopProject(id=top.get("id"), title=top.get("title") or "", views=_views(top)) if top is not None else None
        ),
        total_projects=len(projects),
        published_projects=sum(1 for p in projects if p.get("published")),
    )


async def check_performance_milestones(
    service: "NotificationService",
    *,
    total_view_milestones: Iterable[int] = TOTAL_VIEW_MILESTONES,
    published_project_milestones: Iterable[int] = PUBLISHED_PROJECT_MILESTONES,
) -> list[NotificationRecord]:
    """Report every portfolio-wide milestone reached so far, once per (metric, milestone).

    The alert's ``value`` is the milestone itself so later runs find it by
    (metric, value); the live figure travels as ``observed``.
    """
    projects = await service.store.query_ordered(PROJECTS_COLLECTION, "createdAt", "asc")
    total_views = sum(_views(p) for p in projects)
    published = sum(1 for p in projects if p.get("published"))

    checks = [
        (TOTAL_VIEWS_METRIC, TOTAL_VIEWS_LABEL, total_views, total_view_milestones),
        (PUBLISHED_PROJECTS_METRIC, PUBLISHED_PROJECTS_LABEL, published, published_project_milestones),
    ]
    created: list[NotificationRecord] = []
    for metric, label, observed, milestones in checks:
        for milestone in crossed_milestones(observed, milestones):
            if await performance_alert_exists(service.store, metric, milestone):
                continue
            record = await service.notify_performance(
                metric, milestone, milestone, "up", label=label, observed=observed
            )
            if record is not None:
                logger.info("performance milestone reached", metric=metric, milestone=milestone, observed=observed)
                created.append(record)
    return created


async def run_daily_summary(
    service: "NotificationService",
    checkpoints: CheckpointStore,
    now: datetime,
) -> NotificationRecord | None:
    """Create today's summary unless this or another session already did.

    The local checkpoint short-circuits without touching the store; a stale or
    missing checkpoint falls back to a store query. The checkpoint is set to
    today afterwards whatever the outcome.
    """
    today = now.date()
    if checkpoints.get(DAILY_SUMMARY_CHECKPOINT) == today.isoformat():
        return None
    try:
        if await summary_exists_for_day(service.store, today):
            logger.debug("daily summary already stored", day=today.isoformat())
            return None
        activity = await collect_activity(service.store, start_of_day(now))
        return await service.notify_activity_summary(activity, "daily", day=today)
    finally:
        checkpoints.set(DAILY_SUMMARY_CHECKPOINT, today.isoformat())
