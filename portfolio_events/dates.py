"""Date/time helpers shared by the service, scheduler and feed."""

from __future__ import annotations

from datetime import datetime, timezone


def local_now() -> datetime:
    """Timezone-aware current time in the system's local zone."""
    return datetime.now().astimezone()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value: object) -> datetime | None:
    """Parse an ISO datetime string, normalizing to UTC. Returns None when unparsable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


def format_age(created_at: datetime | None, now: datetime | None = None) -> str:
    """Relative age for feed display: "Just now", "5m ago", "3h ago", "2d ago" or the date."""
    if created_at is None:
        return "Just now"
    now = ensure_utc(now or datetime.now(timezone.utc))
    created = ensure_utc(created_at)
    seconds = (now - created).total_seconds()

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return created.astimezone().strftime("%Y-%m-%d")
