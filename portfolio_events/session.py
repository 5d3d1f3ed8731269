"""Business notification session: the unit an application mounts while it is active."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Coroutine, Iterable

import structlog

from portfolio_events.checkpoint import CheckpointStore, JsonCheckpointStore
from portfolio_events.config import EventsConfig
from portfolio_events.db import RecordStore
from portfolio_events.delivery.email import EmailDeliveryAdapter
from portfolio_events.envelope import NotificationCategory, NotificationType
from portfolio_events.scheduler import NotificationScheduler
from portfolio_events.service import NotificationService, PushCallback

logger = structlog.get_logger(__name__)


class BusinessNotifications:
    """Owns a notification service and its periodic scheduler for one session.

    Entering the context starts the daily and hourly timers; leaving it cancels
    them and waits for any check already running. Several sessions may be active at once; each owns its own timers and
    relies on checkpoints and store dedup to avoid duplicate records.
    """

    def __init__(
        self,
        store: RecordStore,
        checkpoints: CheckpointStore,
        *,
        config: EventsConfig | None = None,
        push_callbacks: Iterable[PushCallback] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        config = config or EventsConfig()
        self.service = NotificationService(
            store,
            push_callbacks=push_callbacks,
            clock=clock,
            view_milestones=config.milestones.views,
        )
        self.scheduler = NotificationScheduler(
            self.service,
            checkpoints,
            settings=config.scheduler,
            milestones=config.milestones,
            clock=clock,
        )

        self.notify_contact_submission = self.service.notify_contact_submission
        self.notify_project_milestone = self.service.notify_project_milestone
        self.notify_maintenance = self.service.notify_maintenance
        self.notify_activity_summary = self.service.notify_activity_summary
        self.notify_project_status = self.service.notify_project_status
        self.notify_performance = self.service.notify_performance
        self.notify_security = self.service.notify_security
        self.notify_backup = self.service.notify_backup

    async def __aenter__(self) -> "BusinessNotifications":
        self.scheduler.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.scheduler.stop()
        await self.scheduler.drain()


def email_adapter_from_config(
    config: EventsConfig,
    send_fn: Callable[..., Coroutine[Any, Any, object]],
) -> EmailDeliveryAdapter | None:
    if not config.email.recipient:
        return None
    return EmailDeliveryAdapter(
        recipient=config.email.recipient,
        send_fn=send_fn,
        categories=[NotificationCategory(c) for c in config.email.categories] or None,
        min_type=NotificationType(config.email.min_type) if config.email.min_type else None,
    )


@asynccontextmanager
async def open_store(config: EventsConfig) -> AsyncIterator[RecordStore]:
    store = RecordStore(db_path=config.db_path)
    await store.init()
    try:
        yield store
    finally:
        await store.close()


@asynccontextmanager
async def open_session(
    config: EventsConfig,
    *,
    send_email: Callable[..., Coroutine[Any, Any, object]] | None = None,
) -> AsyncIterator[BusinessNotifications]:
    """Open the configured store and checkpoints and run a session on them."""
    async with open_store(config) as store:
        callbacks: list[PushCallback] = []
        if send_email is not None:
            adapter = email_adapter_from_config(config, send_email)
            if adapter is not None:
                callbacks.append(adapter.on_notification)
        checkpoints = JsonCheckpointStore(Path(config.checkpoint_path))
        async with BusinessNotifications(store, checkpoints, config=config, push_callbacks=callbacks) as session:
            logger.info("notification session opened", db_path=config.db_path)
            yield session
