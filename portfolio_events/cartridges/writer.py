"""Persists drafts and fans new records out to push callbacks."""

from __future__ import annotations

import asyncio

import structlog

from portfolio_events.constants import NOTIFICATIONS_COLLECTION
from portfolio_events.db import DuplicateRecordError
from portfolio_events.envelope import NotificationDraft, NotificationRecord
from portfolio_events.pipeline import PipelineContext

logger = structlog.get_logger(__name__)


class RecordWriterCartridge:
    name = "record-writer"

    async def process(self, draft: NotificationDraft, context: PipelineContext) -> NotificationRecord | None:
        document = draft.to_document()
        document["read"] = False
        try:
            record_id = await context.store.insert(NOTIFICATIONS_COLLECTION, document, dedup_key=draft.dedup_key)
        except DuplicateRecordError:
            # Another session inserted the same key between the dedup query and this write
            logger.info("writer: duplicate key rejected by store", category=draft.category.value, key=draft.dedup_key)
            return None

        stored = await context.store.get(NOTIFICATIONS_COLLECTION, record_id)
        if stored is None:
            logger.warning("writer: record vanished after insert", record_id=record_id)
            return None
        record = NotificationRecord.from_document(stored)
        await _invoke_push_callbacks(context, record)
        return record


async def _invoke_push_callbacks(context: PipelineContext, record: NotificationRecord) -> None:
    for cb in context.push_callbacks:
        try:
            result = cb(record)
            if asyncio.iscoroutine(result):
                await result
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("push callback failed", category=record.category.value, record_id=record.id)
