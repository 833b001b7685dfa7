"""Display labels and small formatting helpers."""

from datetime import date, datetime
from typing import Optional, Union

from schemas import DeadlineStatus, ProjectStatus, TaskPriority, TaskStatus, TeamRole

STATUS_LABELS = {
    ProjectStatus.active: "Active",
    ProjectStatus.paused: "Paused",
    ProjectStatus.completed: "Completed",
    ProjectStatus.cancelled: "Cancelled",
}

TASK_STATUS_LABELS = {
    TaskStatus.pending: "Pending",
    TaskStatus.todo: "To Do",
    TaskStatus.doing: "Doing",
    TaskStatus.done: "Done",
}

PRIORITY_LABELS = {
    TaskPriority.low: "Low",
    TaskPriority.medium: "Medium",
    TaskPriority.high: "High",
}

ROLE_LABELS = {
    TeamRole.owner: "Owner",
    TeamRole.developer: "Developer",
    TeamRole.tester: "Tester",
    TeamRole.designer: "Designer",
    TeamRole.lead: "Team Lead",
}


def _lookup(labels: dict, value) -> str:
    # Unknown values fall through unchanged
    for key, label in labels.items():
        if key == value:
            return label
    return str(value)


def get_status_label(status) -> str:
    return _lookup(STATUS_LABELS, status)


def get_task_status_label(status) -> str:
    return _lookup(TASK_STATUS_LABELS, status)


def get_priority_label(priority) -> str:
    return _lookup(PRIORITY_LABELS, priority)


def get_role_label(role) -> str:
    return _lookup(ROLE_LABELS, role)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def get_deadline_label(state: DeadlineStatus, days_left: int) -> Optional[str]:
    """
    Banner text for a deadline state.

    Returns None for suppressed deadlines (closed projects show no banner).
    """
    if state == DeadlineStatus.overdue:
        return f"Overdue by {_plural(abs(days_left), 'day')}"
    if state == DeadlineStatus.due_today:
        return "Due today"
    if state == DeadlineStatus.urgent:
        return f"{_plural(days_left, 'day')} left"
    if state == DeadlineStatus.on_time:
        return f"On time ({days_left} days)"
    return None


def get_initials(name: str) -> str:
    """Up to two uppercase initials from a display name."""
    parts = [part for part in (name or "").split(" ") if part]
    return "".join(part[0] for part in parts).upper()[:2]


def format_date(value: Union[date, datetime]) -> str:
    """Format as e.g. 'Oct 19, 2026'."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"
