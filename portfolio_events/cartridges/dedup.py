"""Drops drafts whose semantic key already has a stored record."""

from __future__ import annotations

import structlog

from portfolio_events.constants import NOTIFICATIONS_COLLECTION
from portfolio_events.envelope import NotificationDraft
from portfolio_events.pipeline import PipelineContext

logger = structlog.get_logger(__name__)


class DeduplicationCartridge:
    name = "dedup"

    async def process(self, draft: NotificationDraft, context: PipelineContext) -> NotificationDraft | None:
        key = context.catalog.build_dedup_key(draft.category, draft.metadata)
        if key is None:
            return draft

        # Stamp the key so the writer can hand it to the store's uniqueness constraint
        draft = draft.model_copy(update={"dedup_key": key})

        # Store errors propagate: no insert when the existence check cannot be evaluated
        filters = context.catalog.dedup_filters(draft.category, draft.metadata)
        existing = await context.store.query_by_equality(NOTIFICATIONS_COLLECTION, filters)
        if existing:
            logger.debug("dedup: dropping duplicate notification", category=draft.category.value, key=key)
            return None

        return draft
