"""Shared constants for the notification engine."""

from __future__ import annotations

# Collections
NOTIFICATIONS_COLLECTION = "notifications"
PROJECTS_COLLECTION = "projects"
MESSAGES_COLLECTION = "messages"

# Per-project view counts that trigger a milestone notification (exact match only)
VIEW_MILESTONES: tuple[int, ...] = (10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)

# Portfolio-wide thresholds checked by the hourly performance job
TOTAL_VIEW_MILESTONES: tuple[int, ...] = (1000, 5000, 10000, 25000, 50000, 100000)
PUBLISHED_PROJECT_MILESTONES: tuple[int, ...] = (5, 10, 20, 50)

TOTAL_VIEWS_METRIC = "total_views"
TOTAL_VIEWS_LABEL = "Total Portfolio Views"
PUBLISHED_PROJECTS_METRIC = "published_projects"
PUBLISHED_PROJECTS_LABEL = "Published Projects"

# Checkpoint keys
DAILY_SUMMARY_CHECKPOINT = "lastDailySummary"
PERFORMANCE_CHECK_CHECKPOINT = "lastPerformanceCheck"

# Scheduler defaults (seconds)
DEFAULT_INITIAL_DELAY_S = 2.0
DAILY_INTERVAL_S = 24 * 60 * 60
PERFORMANCE_INTERVAL_S = 60 * 60

DEFAULT_FEED_LIMIT = 10
