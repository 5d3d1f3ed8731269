"""Notification catalog: registry of per-category behavior."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from portfolio_events.envelope import NotificationCategory


class CategorySchema(BaseModel):
    category: NotificationCategory
    description: str
    # Metadata keys that together identify "the same" notification
    dedup_fields: list[str] = []
    # Click target, e.g. "/portfolio/{projectId}"; None means mark-read on click
    route_template: str | None = None


def _key_part(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return "" if value is None else str(value)


class NotificationCatalog:
    def __init__(self) -> None:
        self._registry: dict[NotificationCategory, CategorySchema] = {}

    def register(self, schema: CategorySchema) -> None:
        if schema.category in self._registry:
            raise ValueError(f"Category already registered: {schema.category.value}")
        self._registry[schema.category] = schema

    def get(self, category: NotificationCategory) -> CategorySchema | None:
        return self._registry.get(category)

    def list_all(self) -> list[CategorySchema]:
        return sorted(self._registry.values(), key=lambda s: s.category.value)

    def build_dedup_key(self, category: NotificationCategory, metadata: dict[str, Any]) -> str | None:
        schema = self._registry.get(category)
        if not schema or not schema.dedup_fields:
            return None
        parts = [category.value] + [_key_part(metadata.get(f)) for f in schema.dedup_fields]
        return ":".join(parts)

    def dedup_filters(self, category: NotificationCategory, metadata: dict[str, Any]) -> list[tuple[str, Any]]:
        """Equality filters that find an existing record for the same semantic key."""
        schema = self._registry.get(category)
        if not schema or not schema.dedup_fields:
            return []
        filters: list[tuple[str, Any]] = [("category", category.value)]
        filters.extend((f"metadata.{f}", metadata.get(f)) for f in schema.dedup_fields)
        return filters

    def route_for(self, category: NotificationCategory, metadata: dict[str, Any]) -> str | None:
        schema = self._registry.get(category)
        if not schema or not schema.route_template:
            return None
        try:
            return schema.route_template.format(**{k: v for k, v in metadata.items() if v is not None})
        except KeyError:
            return None


def build_default_catalog() -> NotificationCatalog:
    from portfolio_events.schemas import register_all

    catalog = NotificationCatalog()
    register_all(catalog)
    return catalog
