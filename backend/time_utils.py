"""
Time utilities for the Taskboard application.

This module provides a single source of truth for time operations and for
the deadline classification shown on project cards and the project banner.
Both views call deadline_summary so they can never disagree.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

from labels import get_deadline_label
from schemas import CLOSED_PROJECT_STATUSES, DeadlineStatus, DeadlineSummary

DateLike = Union[date, datetime, str]

# Days-left at or below this (and above zero) count as urgent
URGENT_WINDOW_DAYS = 7


def utc_now() -> datetime:
    """
    Get current UTC time.
    Single source of truth for "now" throughout the application.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def today() -> date:
    """Current local calendar date (time truncated to midnight)."""
    return date.today()


def to_date(value: DateLike) -> date:
    """
    Truncate a date-like value to its calendar date.

    Accepts date objects, datetimes, and ISO 8601 strings (either a plain
    date or a full timestamp).
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value.date()
    return value


def days_left(target: DateLike, current: Optional[date] = None) -> int:
    """
    Whole days from `current` (default: today) until `target`.

    Negative when the target is in the past, zero on the day itself.
    """
    current = today() if current is None else to_date(current)
    return (to_date(target) - current).days


def deadline_status(target: DateLike, status, current: Optional[date] = None) -> DeadlineStatus:
    """
    Classify a deadline into one of five mutually exclusive states.

    Closed entities (completed/cancelled) are always suppressed. Otherwise:
    overdue (< 0), due-today (0), urgent (1..7), on-time (> 7).
    """
    if status in CLOSED_PROJECT_STATUSES:
        return DeadlineStatus.suppressed

    remaining = days_left(target, current)
    if remaining < 0:
        return DeadlineStatus.overdue
    if remaining == 0:
        return DeadlineStatus.due_today
    if remaining <= URGENT_WINDOW_DAYS:
        return DeadlineStatus.urgent
    return DeadlineStatus.on_time


def deadline_summary(project, current: Optional[date] = None) -> DeadlineSummary:
    """
    Deadline banner for a project: status, days left, and display label.

    Args:
        project: Anything with `estimated_end_date` and `status` attributes
        current: Override for today's date

    Returns:
        DeadlineSummary with label None when the banner is suppressed
    """
    remaining = days_left(project.estimated_end_date, current)
    state = deadline_status(project.estimated_end_date, project.status, current)
    return DeadlineSummary(
        status=state,
        days_left=remaining,
        label=get_deadline_label(state, remaining),
    )
