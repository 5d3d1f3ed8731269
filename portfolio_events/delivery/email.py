"""Mails newly created notifications to the site owner."""

from __future__ import annotations

from typing import Any, Callable, Coroutine, Iterable

import structlog

from portfolio_events.envelope import NotificationCategory, NotificationRecord, NotificationType

logger = structlog.get_logger(__name__)

_SEVERITY_RANK = {
    NotificationType.INFO: 0,
    NotificationType.SUCCESS: 0,
    NotificationType.WARNING: 1,
    NotificationType.ERROR: 2,
}


class EmailDeliveryAdapter:
    """Receives pipeline push callbacks and sends matching records through `send_fn`."""

    def __init__(
        self,
        recipient: str,
        send_fn: Callable[..., Coroutine[Any, Any, object]],
        categories: Iterable[NotificationCategory] | None = None,
        min_type: NotificationType | None = None,
    ) -> None:
        self._recipient = recipient
        self._send_fn = send_fn
        self._categories = frozenset(categories) if categories else None
        self._min_rank = _SEVERITY_RANK[min_type] if min_type is not None else 0

    def accepts(self, record: NotificationRecord) -> bool:
        if self._categories is not None and record.category not in self._categories:
            return False
        return _SEVERITY_RANK[record.type] >= self._min_rank

    async def on_notification(self, record: NotificationRecord) -> None:
        if not self.accepts(record):
            return
        try:
            await self._send_fn(
                to=self._recipient,
                subject=f"[{record.category.value}] {record.title}",
                body=record.message,
            )
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception(
                "EmailDeliveryAdapter failed to send",
                category=record.category.value,
                record_id=record.id,
            )
