"""Business notification categories: visitors, content and activity."""

from __future__ import annotations

from typing import TYPE_CHECKING

from portfolio_events.catalog import CategorySchema
from portfolio_events.envelope import NotificationCategory

if TYPE_CHECKING:
    from portfolio_events.catalog import NotificationCatalog


def register_business(catalog: "NotificationCatalog") -> None:
    catalog.register(
        CategorySchema(
            category=NotificationCategory.CONTACT,
            description="A visitor submitted the contact form",
            route_template="/admin/dashboard/messages/{messageId}",
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.MILESTONE,
            description="A project reached a view-count milestone",
            route_template="/portfolio/{projectId}",
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.PROJECT,
            description="A project was published, unpublished, featured or unfeatured",
            route_template="/admin/dashboard/projects/edit/{projectId}",
        )
    )
    catalog.register(
        CategorySchema(
            category=NotificationCategory.SUMMARY,
            description="Periodic activity summary",
            dedup_fields=["period", "day"],
        )
    )
