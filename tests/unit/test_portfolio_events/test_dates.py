"""Tests for date helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from portfolio_events.dates import ensure_utc, format_age, parse_iso_datetime, start_of_day

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(minutes=59), "59m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(days=2), "2d ago"),
    ],
)
def test_format_age(delta: timedelta, expected: str) -> None:
    assert format_age(NOW - delta, NOW) == expected


def test_format_age_old_records_show_date() -> None:
    assert format_age(NOW - timedelta(days=30), NOW).startswith("2026-09-")


def test_format_age_without_timestamp() -> None:
    assert format_age(None, NOW) == "Just now"


def test_parse_iso_datetime() -> None:
    assert parse_iso_datetime("2026-10-19T14:00:00+02:00") == NOW
    assert parse_iso_datetime("2026-10-19T12:00:00") == NOW
    assert parse_iso_datetime("nope") is None
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("") is None


def test_ensure_utc_and_start_of_day() -> None:
    assert ensure_utc(datetime(2026, 10, 19, 12)) == NOW
    assert start_of_day(NOW) == datetime(2026, 10, 19, tzinfo=timezone.utc)
