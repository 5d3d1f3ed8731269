"""A bounded, auto-updating view of the most recent notifications."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Literal

import structlog

from portfolio_events.catalog import NotificationCatalog, build_default_catalog
from portfolio_events.constants import DEFAULT_FEED_LIMIT, NOTIFICATIONS_COLLECTION
from portfolio_events.db import RecordStore
from portfolio_events.envelope import NotificationCategory, NotificationRecord, NotificationType

logger = structlog.get_logger(__name__)

FeedListener = Callable[[list[NotificationRecord]], object]


@dataclass(frozen=True)
class FeedFilter:
    type: NotificationType | None = None
    category: NotificationCategory | None = None
    status: Literal["all", "read", "unread"] = "all"
    newest_first: bool = True

    def matches(self, record: NotificationRecord) -> bool:
        if self.type is not None and record.type != self.type:
            return False
        if self.category is not None and record.category != self.category:
            return False
        if self.status == "read":
            return record.read
        if self.status == "unread":
            return not record.read
        return True


@dataclass(frozen=True)
class NavigationAction:
    """What a click on a feed entry does: open a route, or just mark the entry read."""

    route: str | None = None
    mark_read: bool = False


def _require_id(notification_id: str) -> str:
    if not isinstance(notification_id, str) or not notification_id.strip():
        raise ValueError(f"Invalid notification ID: {notification_id!r}")
    return notification_id


class LiveFeed:
    def __init__(
        self,
        store: RecordStore,
        *,
        limit: int = DEFAULT_FEED_LIMIT,
        catalog: NotificationCatalog | None = None,
    ) -> None:
        self._store = store
        self._limit = limit
        self._catalog = catalog or build_default_catalog()
        self._records: list[NotificationRecord] = []
        self._listeners: list[FeedListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    async def __aenter__(self) -> "LiveFeed":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = await self._store.subscribe(
            NOTIFICATIONS_COLLECTION, "createdAt", "desc", self._limit, self._on_snapshot
        )

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def records(self) -> list[NotificationRecord]:
        return list(self._records)

    @property
    def unread_count(self) -> int:
        return sum(1 for r in self._records if not r.read)

    def on_change(self, listener: FeedListener) -> Callable[[], None]:
        """Register a listener for every new snapshot. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def _on_snapshot(self, documents: list[dict]) -> None:
        self._records = [NotificationRecord.from_document(d) for d in documents]
        for listener in list(self._listeners):
            try:
                result = listener(self.records)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("feed listener failed")

    # Mutations

    async def mark_read(self, notification_id: str) -> bool:
        return await self._store.update(NOTIFICATIONS_COLLECTION, _require_id(notification_id), {"read": True})

    async def mark_unread(self, notification_id: str) -> bool:
        return await self._store.update(NOTIFICATIONS_COLLECTION, _require_id(notification_id), {"read": False})

    async def toggle_read(self, notification_id: str) -> bool:
        """Flip the read flag. Returns the new value."""
        document = await self._store.get(NOTIFICATIONS_COLLECTION, _require_id(notification_id))
        if document is None:
            raise KeyError(notification_id)
        new_value = not document.get("read", False)
        await self._store.update(NOTIFICATIONS_COLLECTION, notification_id, {"read": new_value})
        return new_value

    async def delete(self, notification_id: str) -> bool:
        return await self._store.delete(NOTIFICATIONS_COLLECTION, _require_id(notification_id))

    async def mark_all_read(self) -> int:
        """Mark every unread notification read in one batch. Returns how many changed."""
        unread = await self._store.query_by_equality(NOTIFICATIONS_COLLECTION, [("read", False)])
        count = await self._store.update_many(NOTIFICATIONS_COLLECTION, [d["id"] for d in unread], {"read": True})
        logger.info("marked all notifications read", count=count)
        return count

    # Presentation

    def filtered(self, criteria: FeedFilter | None = None) -> list[NotificationRecord]:
        criteria = criteria or FeedFilter()
        matched = [r for r in self._records if criteria.matches(r)]
        return sorted(matched, key=lambda r: r.created_at, reverse=criteria.newest_first)

    def action_for(self, record: NotificationRecord) -> NavigationAction:
        route = self._catalog.route_for(record.category, record.metadata)
        if route is not None:
            return NavigationAction(route=route)
        return NavigationAction(mark_read=not record.read)

    async def activate(self, record: NotificationRecord) -> NavigationAction:
        """Handle a click: navigate when the category has a target, otherwise mark read."""
        action = self.action_for(record)
        if action.mark_read:
            await self.mark_read(record.id)
        return action
