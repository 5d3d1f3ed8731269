"""Tests for the live notification feed."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from portfolio_events.envelope import NotificationCategory, NotificationRecord, NotificationType
from portfolio_events.feed import FeedFilter, LiveFeed, NavigationAction
from portfolio_events.service import NotificationService

from .conftest import FakeClock


def _record(**overrides: object) -> NotificationRecord:
    fields: dict[str, object] = {
        "id": "n1",
        "type": NotificationType.INFO,
        "title": "t",
        "message": "m",
        "category": NotificationCategory.BACKUP,
        "metadata": {},
        "read": False,
        "created_at": datetime(2026, 10, 19, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return NotificationRecord.model_validate(fields)


@pytest.mark.asyncio
async def test_feed_tracks_new_records_and_unread_count(service: NotificationService) -> None:
    async with LiveFeed(service.store) as feed:
        assert feed.records == []
        assert feed.unread_count == 0

        first = await service.notify_backup(True, "one")
        second = await service.notify_security("Login", "x", "low")
        assert first is not None and second is not None

        assert [r.id for r in feed.records] == [second.id, first.id]
        assert feed.unread_count == 2


@pytest.mark.asyncio
async def test_mark_read_and_unread_update_count(service: NotificationService) -> None:
    record = await service.notify_backup(True, "one")
    assert record is not None
    async with LiveFeed(service.store) as feed:
        assert feed.unread_count == 1
        assert await feed.mark_read(record.id)
        assert feed.unread_count == 0
        assert feed.records[0].read is True
        assert await feed.mark_unread(record.id)
        assert feed.unread_count == 1


@pytest.mark.asyncio
async def test_toggle_read(service: NotificationService) -> None:
    record = await service.notify_backup(True, "one")
    assert record is not None
    feed = LiveFeed(service.store)
    assert await feed.toggle_read(record.id) is True
    assert await feed.toggle_read(record.id) is False
    with pytest.raises(KeyError):
        await feed.toggle_read("missing")


@pytest.mark.asyncio
async def test_unread_count_reflects_only_the_window(service: NotificationService) -> None:
    for i in range(4):
        await service.notify_backup(True, f"backup {i}")
    async with LiveFeed(service.store, limit=3) as feed:
        assert len(feed.records) == 3
        assert feed.unread_count == 3
        assert feed.records[0].message == "✅ backup 3"


@pytest.mark.asyncio
async def test_delete_removes_from_feed(service: NotificationService) -> None:
    record = await service.notify_backup(True, "one")
    assert record is not None
    async with LiveFeed(service.store) as feed:
        assert await feed.delete(record.id)
        assert feed.records == []
        assert await feed.delete(record.id) is False


@pytest.mark.asyncio
async def test_mark_all_read_covers_records_outside_window(service: NotificationService) -> None:
    for i in range(5):
        await service.notify_backup(True, f"backup {i}")
    async with LiveFeed(service.store, limit=2) as feed:
        assert await feed.mark_all_read() == 5
        assert feed.unread_count == 0
        assert await feed.mark_all_read() == 0
    assert await service.store.query_by_equality("notifications", [("read", False)]) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["", "   "])
async def test_invalid_ids_are_rejected(service: NotificationService, bad_id: str) -> None:
    feed = LiveFeed(service.store)
    with pytest.raises(ValueError):
        await feed.mark_read(bad_id)
    with pytest.raises(ValueError):
        await feed.delete(bad_id)


@pytest.mark.asyncio
async def test_unknown_id_is_reported_not_raised(service: NotificationService) -> None:
    feed = LiveFeed(service.store)
    assert await feed.mark_read("does-not-exist") is False


@pytest.mark.asyncio
async def test_on_change_listener(service: NotificationService) -> None:
    counts: list[int] = []
    async with LiveFeed(service.store) as feed:
        remove = feed.on_change(lambda records: counts.append(len(records)))
        await service.notify_backup(True, "one")
        remove()
        await service.notify_backup(True, "two")
    assert counts == [1]


@pytest.mark.asyncio
async def test_close_stops_updates(service: NotificationService) -> None:
    feed = LiveFeed(service.store)
    await feed.start()
    feed.close()
    await service.notify_backup(True, "one")
    assert feed.records == []


@pytest.mark.asyncio
async def test_filtered(service: NotificationService, clock: FakeClock) -> None:
    async with LiveFeed(service.store) as feed:
        backup = await service.notify_backup(False, "failed")
        clock.advance(minutes=1)
        security = await service.notify_security("Login", "x", "low")
        assert backup is not None and security is not None
        await feed.mark_read(security.id)

        assert [r.id for r in feed.filtered()] == [security.id, backup.id]
        assert [r.id for r in feed.filtered(FeedFilter(newest_first=False))] == [backup.id, security.id]
        assert [r.id for r in feed.filtered(FeedFilter(status="unread"))] == [backup.id]
        assert [r.id for r in feed.filtered(FeedFilter(status="read"))] == [security.id]
        assert [r.id for r in feed.filtered(FeedFilter(type=NotificationType.ERROR))] == [backup.id]
        assert [r.id for r in feed.filtered(FeedFilter(category=NotificationCategory.SECURITY))] == [security.id]


@pytest.mark.parametrize(
    ("category", "metadata", "route"),
    [
        (NotificationCategory.CONTACT, {"messageId": "m1"}, "/admin/dashboard/messages/m1"),
        (NotificationCategory.MILESTONE, {"projectId": "p1"}, "/portfolio/p1"),
        (NotificationCategory.PROJECT, {"projectId": "p1"}, "/admin/dashboard/projects/edit/p1"),
    ],
)
def test_action_for_routed_categories(category: NotificationCategory, metadata: dict, route: str) -> None:
    feed = LiveFeed(store=None)  # type: ignore[arg-type]
    assert feed.action_for(_record(category=category, metadata=metadata)) == NavigationAction(route=route)


def test_action_for_missing_target_falls_back_to_mark_read() -> None:
    feed = LiveFeed(store=None)  # type: ignore[arg-type]
    record = _record(category=NotificationCategory.CONTACT, metadata={"messageId": None})
    assert feed.action_for(record) == NavigationAction(mark_read=True)
    assert feed.action_for(_record(read=True)) == NavigationAction(mark_read=False)


@pytest.mark.asyncio
async def test_activate_marks_unrouted_record_read(service: NotificationService) -> None:
    record = await service.notify_backup(True, "one")
    contact = await service.notify_contact_submission({"id": "m9", "name": "Ada", "email": "a@b.c"})
    assert record is not None and contact is not None
    async with LiveFeed(service.store) as feed:
        action = await feed.activate(record)
        assert action.mark_read
        routed = await feed.activate(contact)
        assert routed.route == "/admin/dashboard/messages/m9"
        assert feed.unread_count == 1
