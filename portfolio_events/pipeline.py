"""Notification pipeline: dedup and write stages run in order over one draft.

A stage returns the (possibly restamped) draft to continue, ``None`` to drop
it, or the stored ``NotificationRecord`` once it has been written. Only the
last stage may produce a record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

import structlog

from portfolio_events.catalog import NotificationCatalog
from portfolio_events.db import RecordStore
from portfolio_events.envelope import NotificationDraft, NotificationRecord

logger = structlog.get_logger(__name__)

PushCallback = Callable[[NotificationRecord], object]


@dataclass
class PipelineContext:
    catalog: NotificationCatalog
    store: RecordStore
    push_callbacks: list[PushCallback] = field(default_factory=list)


class Cartridge(Protocol):
    name: str

    async def process(
        self, draft: NotificationDraft, context: PipelineContext
    ) -> NotificationDraft | NotificationRecord | None: ...


class Pipeline:
    def __init__(self, cartridges: Sequence[Cartridge], context: PipelineContext) -> None:
        if not cartridges:
            raise ValueError("pipeline needs at least one cartridge")
        self._cartridges = list(cartridges)
        self._context = context

    @property
    def context(self) -> PipelineContext:
        return self._context

    @property
    def stages(self) -> list[str]:
        return [c.name for c in self._cartridges]

    async def execute(self, draft: NotificationDraft) -> NotificationRecord | None:
        """Run ``draft`` through every stage. Returns the stored record, or None when a stage dropped it."""
        current: NotificationDraft | NotificationRecord = draft
        for cartridge in self._cartridges:
            if isinstance(current, NotificationRecord):
                raise TypeError(f"stage before {cartridge.name!r} already produced a stored record")
            result = await cartridge.process(current, self._context)
            if result is None:
                logger.debug("pipeline: draft dropped", stage=cartridge.name, category=draft.category.value)
                return None
            current = result

        if not isinstance(current, NotificationRecord):
            raise TypeError(f"last stage {self._cartridges[-1].name!r} did not store the draft")
        return current
