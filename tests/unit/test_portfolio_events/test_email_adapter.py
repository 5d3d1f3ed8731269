"""Tests for the email delivery adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from portfolio_events.delivery.email import EmailDeliveryAdapter
from portfolio_events.envelope import NotificationCategory, NotificationType
from portfolio_events.service import NotificationService


@pytest.mark.asyncio
async def test_sends_every_record_by_default(service: NotificationService) -> None:
    send = AsyncMock()
    service.add_push_callback(EmailDeliveryAdapter("owner@example.com", send).on_notification)

    await service.notify_backup(False, "Bucket unreachable")

    send.assert_awaited_once_with(
        to="owner@example.com",
        subject="[backup] Backup Failed",
        body="❌ Bucket unreachable",
    )


@pytest.mark.asyncio
async def test_category_filter(service: NotificationService) -> None:
    send = AsyncMock()
    adapter = EmailDeliveryAdapter("owner@example.com", send, categories=[NotificationCategory.CONTACT])
    service.add_push_callback(adapter.on_notification)

    await service.notify_backup(True, "ok")
    await service.notify_contact_submission({"name": "Ada", "email": "ada@example.com"})

    assert send.await_count == 1
    assert send.await_args.kwargs["subject"] == "[contact] New Contact Form Submission"


@pytest.mark.asyncio
async def test_minimum_type_filter(service: NotificationService) -> None:
    send = AsyncMock()
    adapter = EmailDeliveryAdapter("owner@example.com", send, min_type=NotificationType.WARNING)
    service.add_push_callback(adapter.on_notification)

    await service.notify_security("Login", "x", "low")
    await service.notify_security("Login", "y", "medium")
    await service.notify_security("Login", "z", "high")

    assert send.await_count == 2


@pytest.mark.asyncio
async def test_send_failure_does_not_break_notification(service: NotificationService) -> None:
    send = AsyncMock(side_effect=ConnectionError("smtp down"))
    service.add_push_callback(EmailDeliveryAdapter("owner@example.com", send).on_notification)

    record = await service.notify_backup(True, "ok")

    assert record is not None
    send.assert_awaited_once()
