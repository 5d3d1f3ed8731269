"""Notification records: the core data model of the notification engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationCategory(str, Enum):
    CONTACT = "contact"
    MILESTONE = "milestone"
    MAINTENANCE = "maintenance"
    SUMMARY = "summary"
    PROJECT = "project"
    PERFORMANCE = "performance"
    SECURITY = "security"
    BACKUP = "backup"


class _CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys in stored documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# Category metadata


class ContactMetadata(_CamelModel):
    message_id: str | None = None
    sender_name: str
    sender_email: str
    subject: str | None = None


class MilestoneMetadata(_CamelModel):
    project_id: str | None = None
    project_title: str
    view_count: int
    milestone: int


class MaintenanceMetadata(_CamelModel):
    maintenance_type: str
    description: str
    scheduled_time: datetime | None = None


class TopProject(_CamelModel):
    id: str | None = None
    title: str = ""
    views: int = 0


class SummaryMetadata(_CamelModel):
    period: str
    total_views: int = 0
    new_messages: int = 0
    top_project: TopProject | None = None
    total_projects: int = 0
    published_projects: int = 0
    date: datetime
    day: str


class ProjectStatusMetadata(_CamelModel):
    project_id: str | None = None
    project_title: str
    old_status: str | None = None
    new_status: str


class PerformanceMetadata(_CamelModel):
    metric: str
    label: str
    value: int | float
    threshold: int | float
    trend: str = "up"
    is_good: bool
    observed: int | float | None = None


class SecurityMetadata(_CamelModel):
    alert_type: str
    description: str
    severity: str


class BackupMetadata(_CamelModel):
    success: bool
    details: str
    timestamp: datetime


METADATA_MODELS: dict[NotificationCategory, type[_CamelModel]] = {
    NotificationCategory.CONTACT: ContactMetadata,
    NotificationCategory.MILESTONE: MilestoneMetadata,
    NotificationCategory.MAINTENANCE: MaintenanceMetadata,
    NotificationCategory.SUMMARY: SummaryMetadata,
    NotificationCategory.PROJECT: ProjectStatusMetadata,
    NotificationCategory.PERFORMANCE: PerformanceMetadata,
    NotificationCategory.SECURITY: SecurityMetadata,
    NotificationCategory.BACKUP: BackupMetadata,
}


def parse_metadata(category: NotificationCategory, data: dict[str, Any]) -> _CamelModel:
    """Validate a stored metadata mapping against its category's model."""
    return METADATA_MODELS[category].model_validate(data)


class ActivitySummary(_CamelModel):
    total_views: int = 0
    new_messages: int = 0
    top_project: TopProject | None = None
    total_projects: int = 0
    published_projects: int = 0


# Records


class NotificationDraft(_CamelModel):
    type: NotificationType
    title: str
    message: str
    category: NotificationCategory
    metadata: dict[str, Any] = Field(default_factory=dict)
    # Semantic key stamped by the dedup cartridge; never persisted in the document body
    dedup_key: str | None = Field(default=None, exclude=True)

    @classmethod
    def build(
        cls,
        type: NotificationType,
        title: str,
        message: str,
        metadata: _CamelModel,
    ) -> "NotificationDraft":
        category = next(c for c, model in METADATA_MODELS.items() if isinstance(metadata, model))
        return cls(type=type, title=title, message=message, category=category, metadata=metadata.to_document())

    def typed_metadata(self) -> _CamelModel:
        return parse_metadata(self.category, self.metadata)


class NotificationRecord(NotificationDraft):
    id: str
    read: bool = False
    created_at: datetime

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "NotificationRecord":
        return cls.model_validate(document)
