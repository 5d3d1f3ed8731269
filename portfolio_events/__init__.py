"""portfolio_events: business notification engine for the portfolio admin dashboard."""

from portfolio_events.catalog import CategorySchema, NotificationCatalog, build_default_catalog
from portfolio_events.checkpoint import CheckpointStore, JsonCheckpointStore, MemoryCheckpointStore
from portfolio_events.db import DuplicateRecordError, RecordStore, RecordStoreError
from portfolio_events.envelope import (
    ActivitySummary,
    NotificationCategory,
    NotificationDraft,
    NotificationRecord,
    NotificationType,
)
from portfolio_events.feed import FeedFilter, LiveFeed, NavigationAction
from portfolio_events.pipeline import Pipeline, PipelineContext
from portfolio_events.scheduler import NotificationScheduler, PeriodicCheck
from portfolio_events.service import NotificationService
from portfolio_events.session import BusinessNotifications, open_session

__all__ = [
    "NotificationType",
    "NotificationCategory",
    "NotificationDraft",
    "NotificationRecord",
    "ActivitySummary",
    "CategorySchema",
    "NotificationCatalog",
    "build_default_catalog",
    "RecordStore",
    "RecordStoreError",
    "DuplicateRecordError",
    "CheckpointStore",
    "JsonCheckpointStore",
    "MemoryCheckpointStore",
    "Pipeline",
    "PipelineContext",
    "NotificationService",
    "NotificationScheduler",
    "PeriodicCheck",
    "LiveFeed",
    "FeedFilter",
    "NavigationAction",
    "BusinessNotifications",
    "open_session",
]
