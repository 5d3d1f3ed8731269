"""Public-site actions that feed the notification engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

import structlog

from portfolio_events.constants import MESSAGES_COLLECTION, PROJECTS_COLLECTION
from portfolio_events.envelope import NotificationRecord
from portfolio_events.service import NotificationService

logger = structlog.get_logger(__name__)


async def submit_contact_message(
    service: NotificationService, form: Mapping[str, Any]
) -> tuple[str, NotificationRecord | None]:
    """Save a contact-form message and notify the admin.

    Store errors propagate so the caller can tell the visitor the message failed.
    """
    message_id = await service.store.insert(MESSAGES_COLLECTION, {**form, "read": False})
    record = await service.notify_contact_submission({**form, "id": message_id})
    return message_id, record


async def record_project_view(
    service: NotificationService, project_id: str
) -> tuple[int, NotificationRecord | None] | None:
    """Count one view of a published project and fire its milestone notification if due.

    Returns None when the project does not exist or is unpublished.
    """
    project = await service.store.get(PROJECTS_COLLECTION, project_id)
    if project is None or not project.get("published"):
        return None

    view_count = int(project.get("views") or 0) + 1
    await service.store.update(
        PROJECTS_COLLECTION,
        project_id,
        {"views": view_count, "lastViewedAt": datetime.now(timezone.utc).isoformat()},
    )
    try:
        record = await service.notify_project_milestone(project, view_count)
    except Exception:  # pylint: disable=broad-exception-caught
        # View is already counted; milestone failures are logged only
        logger.exception("Error creating milestone notification", project_id=project_id, view_count=view_count)
        record = None
    return view_count, record
