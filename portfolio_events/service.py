"""Notification service: turns domain events into persisted notification records.

Each ``notify_*`` method builds a category-specific draft and runs it through
the pipeline (dedup, then write). Store failures are logged and re-raised so
user-triggered callers can surface them; periodic callers catch them in the
scheduler.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping

import structlog

from portfolio_events.cartridges import DeduplicationCartridge, RecordWriterCartridge
from portfolio_events.catalog import NotificationCatalog, build_default_catalog
from portfolio_events.constants import VIEW_MILESTONES
from portfolio_events.dates import local_now
from portfolio_events.db import RecordStore, RecordStoreError
from portfolio_events.detector import is_view_milestone
from portfolio_events.envelope import (
    ActivitySummary,
    BackupMetadata,
    ContactMetadata,
    MaintenanceMetadata,
    MilestoneMetadata,
    NotificationDraft,
    NotificationRecord,
    NotificationType,
    PerformanceMetadata,
    ProjectStatusMetadata,
    SecurityMetadata,
    SummaryMetadata,
)
from portfolio_events.pipeline import Pipeline, PipelineContext, PushCallback

logger = structlog.get_logger(__name__)

_MAINTENANCE = {
    "scheduled": ("Scheduled Maintenance", NotificationType.WARNING, "🔧"),
    "emergency": ("Emergency Maintenance", NotificationType.ERROR, "🚨"),
    "completed": ("Maintenance Completed", NotificationType.SUCCESS, "✅"),
}

_PROJECT_STATUS = {
    "published": ("🚀", NotificationType.SUCCESS),
    "unpublished": ("📝", NotificationType.WARNING),
    "featured": ("⭐", NotificationType.INFO),
    "unfeatured": ("📌", NotificationType.INFO),
}

_SECURITY = {
    "low": ("🔒", NotificationType.INFO),
    "medium": ("⚠️", NotificationType.WARNING),
    "high": ("🚨", NotificationType.ERROR),
    "critical": ("🔥", NotificationType.ERROR),
}


def _optional_id(value: Any) -> str | None:
    return None if value is None else str(value)


def _fmt_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def threshold_met(value: int | float, threshold: int | float, trend: str) -> bool:
    """Upward metrics are good at or above the threshold, downward ones at or below it.

    Any other trend is never good.
    """
    if trend == "up":
        return value >= threshold
    if trend == "down":
        return value <= threshold
    return False


class NotificationService:
    def __init__(
        self,
        store: RecordStore,
        catalog: NotificationCatalog | None = None,
        push_callbacks: Iterable[PushCallback] | None = None,
        clock: Callable[[], datetime] | None = None,
        view_milestones: Iterable[int] = VIEW_MILESTONES,
    ) -> None:
        self._store = store
        self._catalog = catalog or build_default_catalog()
        self._clock = clock or local_now
        self._view_milestones = tuple(view_milestones)
        context = PipelineContext(catalog=self._catalog, store=store, push_callbacks=list(push_callbacks or []))
        self._pipeline = Pipeline([DeduplicationCartridge(), RecordWriterCartridge()], context)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def catalog(self) -> NotificationCatalog:
        return self._catalog

    def add_push_callback(self, callback: PushCallback) -> None:
        self._pipeline.context.push_callbacks.append(callback)

    async def create_notification(self, draft: NotificationDraft) -> NotificationRecord | None:
        """Run a draft through the pipeline. Returns None when it was deduplicated."""
        try:
            result = await self._pipeline.execute(draft)
        except RecordStoreError:
            logger.exception("Error creating notification", category=draft.category.value, title=draft.title)
            raise
        return result

    async def notify_contact_submission(self, message: Mapping[str, Any]) -> NotificationRecord | None:
        name = message.get("name") or ""
        email = message.get("email") or ""
        subject = message.get("subject") or None
        metadata = ContactMetadata(
            message_id=_optional_id(message.get("id")),
            sender_name=name,
            sender_email=email,
            subject=subject,
        )
        return await self.create_notification(
            NotificationDraft.build(
                NotificationType.INFO,
                "New Contact Form Submission",
                f'{name} ({email}) sent a message: "{subject or "No subject"}"',
                metadata,
            )
        )

    async def notify_project_milestone(
        self, project: Mapping[str, Any], view_count: int
    ) -> NotificationRecord | None:
        if not is_view_milestone(view_count, self._view_milestones):
            return None
        title = project.get("title") or "Untitled project"
        metadata = MilestoneMetadata(
            project_id=_optional_id(project.get("id")),
            project_title=title,
            view_count=view_count,
            milestone=view_count,
        )
        return await self.create_notification(
            NotificationDraft.build(
                NotificationType.SUCCESS,
                "Project Milestone Reached!",
                f'"{title}" has reached {view_count} views! 🎉',
                metadata,
            )
        )

    async def notify_maintenance(
        self,
        kind: str,
        description: str,
        scheduled_time: datetime | None = None,
    ) -> NotificationRecord | None:
        title, notification_type, icon = _MAINTENANCE.get(kind, _MAINTENANCE["scheduled"])
        message = f"{icon} {description}"
        if scheduled_time is not None:
            message += f" Scheduled for: {scheduled_time.strftime('%Y-%m-%d %H:%M')}"
        metadata = MaintenanceMetadata(maintenance_type=kind, description=description, scheduled_time=scheduled_time)
        return await self.create_notification(NotificationDraft.build(notification_type, title, message, metadata))

    async def notify_activity_summary(
        self,
        activity: ActivitySummary | Mapping[str, Any],
        period: str = "daily",
        *,
        day: date | None = None,
    ) -> NotificationRecord | None:
        """Create the daily or weekly summary. At most one per (period, day) is stored.

        Any period other than ``daily`` is worded as weekly; the raw period is stored.
        """
        if not isinstance(activity, ActivitySummary):
            activity = ActivitySummary.model_validate(dict(activity))

        now = self._clock()
        day = day or now.date()
        period_text = "Today" if period == "daily" else "This Week"
        emoji = "📊" if period == "daily" else "📈"

        lines = [
            f"{emoji} {period_text}'s Summary:",
            f"• {activity.total_views} total project views",
            f"• {activity.new_messages} new messages",
            f"• {activity.published_projects}/{activity.total_projects} projects published",
        ]
        if activity.top_project is not None:
            lines.append(f'• Top project: "{activity.top_project.title}" ({activity.top_project.views} views)')

        metadata = SummaryMetadata(
            period=period,
            total_views=activity.total_views,
            new_messages=activity.new_messages,
            top_project=activity.top_project,
            total_projects=activity.total_projects,
            published_projects=activity.published_projects,
            date=now,
            day=day.isoformat(),
        )
        return await self.create_notification(
            NotificationDraft.build(NotificationType.INFO, f"{period_text}'s Activity Summary", "\n".join(lines), metadata)
        )

    async def notify_project_status(
        self,
        project: Mapping[str, Any],
        old_status: str | None,
        new_status: str,
    ) -> NotificationRecord | None:
        emoji, notification_type = _PROJECT_STATUS.get(new_status, ("📄", NotificationType.INFO))
        title = project.get("title") or "Untitled project"
        metadata = ProjectStatusMetadata(
            project_id=_optional_id(project.get("id")),
            project_title=title,
            old_status=old_status,
            new_status=new_status,
        )
        return await self.create_notification(
            NotificationDraft.build(
                notification_type,
                "Project Status Updated",
                f'{emoji} "{title}" has been {new_status}',
                metadata,
            )
        )

    async def notify_performance(
        self,
        metric: str,
        value: int | float,
        threshold: int | float,
        trend: str = "up",
        *,
        label: str | None = None,
        observed: int | float | None = None,
    ) -> NotificationRecord | None:
        """Report a metric against its threshold. Repeats for the same (metric, value) are dropped."""
        is_good = threshold_met(value, threshold, trend)
        label = label or metric
        shown = observed if observed is not None else value
        metadata = PerformanceMetadata(
            metric=metric,
            label=label,
            value=value,
            threshold=threshold,
            trend=trend,
            is_good=is_good,
            observed=observed,
        )
        return await self.create_notification(
            NotificationDraft.build(
                NotificationType.SUCCESS if is_good else NotificationType.WARNING,
                "Performance Alert",
                f"{'📈' if is_good else '📉'} {label}: {_fmt_number(shown)} (threshold: {_fmt_number(threshold)})",
                metadata,
            )
        )

    async def notify_security(
        self,
        alert_type: str,
        description: str,
        severity: str = "medium",
    ) -> NotificationRecord | None:
        emoji, notification_type = _SECURITY.get(severity, _SECURITY["medium"])
        metadata = SecurityMetadata(alert_type=alert_type, description=description, severity=severity)
        return await self.create_notification(
            NotificationDraft.build(notification_type, "Security Alert", f"{emoji} {alert_type}: {description}", metadata)
        )

    async def notify_backup(self, success: bool, details: str) -> NotificationRecord | None:
        metadata = BackupMetadata(success=success, details=details, timestamp=self._clock())
        return await self.create_notification(
            NotificationDraft.build(
                NotificationType.SUCCESS if success else NotificationType.ERROR,
                "Backup Completed" if success else "Backup Failed",
                f"{'✅' if success else '❌'} {details}",
                metadata,
            )
        )
