"""Built-in notification category definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_events.catalog import NotificationCatalog


def register_all(catalog: "NotificationCatalog") -> None:
    from portfolio_events.schemas.business import register_business
    from portfolio_events.schemas.system import register_system

    register_business(catalog)
    register_system(catalog)
