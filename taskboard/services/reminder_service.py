"""Deadline reminder scheduling."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from kombu.exceptions import OperationalError

from taskboard.config import settings

logger = logging.getLogger(__name__)


class ReminderScheduler(Protocol):
    """Schedules and cancels the reminder of one task."""

    def schedule_reminder(self, task) -> Optional[str]:
        ...

    def cancel_reminder(self, reminder_id: Optional[str]) -> None:
        ...


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CeleryReminderScheduler:
    """Enqueue ``send_task_reminder`` at the task deadline."""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.REMINDERS_ENABLED if enabled is None else enabled

    def schedule_reminder(self, task) -> Optional[str]:
        """Return the Celery task id, or None when nothing was scheduled."""
        if not self.enabled or task.deadline is None or task.is_completed:
            return None

        eta = _as_utc(task.deadline)
        if eta <= datetime.now(timezone.utc):
            logger.debug("Deadline of task %s already passed, no reminder", task.id)
            return None

        from taskboard.tasks.reminders import send_task_reminder

        try:
            result = send_task_reminder.apply_async(args=[str(task.id)], eta=eta)
        except OperationalError as exc:
            logger.error("Failed to schedule reminder for task %s: %s", task.id, exc, exc_info=True)
            return None

        logger.info("Reminder %s scheduled for task %s at %s", result.id, task.id, eta.isoformat())
        return result.id

    def cancel_reminder(self, reminder_id: Optional[str]) -> None:
        if not self.enabled or not reminder_id:
            return

        from taskboard.tasks.celery_app import celery_app

        try:
            celery_app.control.revoke(reminder_id)
        except OperationalError as exc:
            logger.error("Failed to cancel reminder %s: %s", reminder_id, exc, exc_info=True)
            return
        logger.info("Reminder %s cancelled", reminder_id)


reminder_scheduler = CeleryReminderScheduler()
