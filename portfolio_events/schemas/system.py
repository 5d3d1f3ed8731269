"""System notification categories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from portfolio_events.catalog import CategorySchema
from portfolio_events.envelope import NotificationCategory

if TYPE_CHECKING:
    from portfolio_events.catalog import NotificationCatalog


def register_system(catalog: "NotificationCatalog") -> None:
    catalog.register(
        CategorySchema(
            category=NotificationCategory.MAINTENANCE,
            description="Scheduled, emergency or completed maintenance",
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.PERFORMANCE,
            description="A performance metric crossed a threshold",
            dedup_fields=["metric", "value"],
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.SECURITY,
            description="Security alert",
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.BACKUP,
            description="Backup finished or failed",
        )
    )
