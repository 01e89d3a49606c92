"""Display helpers for task views. Advisory only; the API is authoritative."""

from __future__ import annotations

from datetime import date
from typing import Dict, Mapping, Optional

from models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, Task, parse_due_date

STATUS_LABELS: Dict[str, str] = {
    "pending": "Pending",
    "in-progress": "In Progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

_CLOSED_STATUSES = ("completed", "cancelled")


def _due(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_due_date(value)
    except ValueError:
        return None


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, STATUS_LABELS["pending"])


def format_due_date(value: Optional[str]) -> str:
    due = _due(value)
    if due is None:
        return "No due date"
    return f"{due:%b} {due.day}, {due.year}"


def is_overdue(task: Task, today: Optional[date] = None) -> bool:
    due = _due(task.due_date)
    if due is None:
        return False
    today = today or date.today()
    return due < today and task.status not in _CLOSED_STATUSES


def validate_task_form(data: Mapping[str, object], today: Optional[date] = None) -> Dict[str, str]:
    """
    Client-side checks run before submitting a task form.

    Returns ``{field: message}``; empty means the form may be submitted.
    Unlike the API, a due date in the past is rejected here.
    """
    errors: Dict[str, str] = {}

    title = str(data.get("title") or "")
    if not title.strip():
        errors["title"] = "Title is required"
    elif len(title) > TITLE_MAX_LENGTH:
        errors["title"] = "Title must be less than 255 characters"

    description = str(data.get("description") or "")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        errors["description"] = "Description must be less than 1000 characters"

    raw_due = str(data.get("due_date") or "")
    if raw_due:
        due = _due(raw_due)
        if due is None:
            errors["due_date"] = "Due date must be a valid date"
        elif due < (today or date.today()):
            errors["due_date"] = "Due date cannot be in the past"

    return errors
