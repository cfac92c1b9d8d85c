"""Tests for deadline reminders."""
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from kombu.exceptions import OperationalError
from sqlalchemy import select

from taskboard.models.notification import Notification
from taskboard.services.reminder_service import CeleryReminderScheduler
from taskboard.tasks.celery_app import celery_app
from taskboard.tasks.reminders import deliver_reminder, send_task_reminder


def make_task(deadline, completed=False):
    return SimpleNamespace(id=uuid.uuid4(), deadline=deadline, is_completed=completed)


@pytest.fixture
def enqueued(monkeypatch):
    calls = []

    def fake_apply_async(args=None, eta=None, **kwargs):
        calls.append({"args": args, "eta": eta})
        return SimpleNamespace(id=f"celery-{len(calls)}")

    monkeypatch.setattr(send_task_reminder, "apply_async", fake_apply_async)
    return calls


def test_schedules_at_deadline(enqueued):
    deadline = datetime.now(timezone.utc) + timedelta(hours=3)
    task = make_task(deadline)

    reminder_id = CeleryReminderScheduler(enabled=True).schedule_reminder(task)

    assert reminder_id == "celery-1"
    assert enqueued == [{"args": [str(task.id)], "eta": deadline}]


def test_naive_deadline_is_taken_as_utc(enqueued):
    deadline = (datetime.now(timezone.utc) + timedelta(days=1)).replace(tzinfo=None)

    CeleryReminderScheduler(enabled=True).schedule_reminder(make_task(deadline))

    assert enqueued[0]["eta"] == deadline.replace(tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "task",
    [
        make_task(None),
        make_task(datetime.now(timezone.utc) - timedelta(minutes=1)),
        make_task(datetime.now(timezone.utc) + timedelta(days=1), completed=True),
    ],
)
def test_nothing_to_schedule(enqueued, task):
    assert CeleryReminderScheduler(enabled=True).schedule_reminder(task) is None
    assert enqueued == []


def test_disabled_scheduler_does_nothing(enqueued):
    task = make_task(datetime.now(timezone.utc) + timedelta(days=1))

    assert CeleryReminderScheduler(enabled=False).schedule_reminder(task) is None
    assert enqueued == []


def test_broker_down_is_logged_not_raised(monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise OperationalError("connection refused")

    monkeypatch.setattr(send_task_reminder, "apply_async", broken)
    task = make_task(datetime.now(timezone.utc) + timedelta(days=1))

    assert CeleryReminderScheduler(enabled=True).schedule_reminder(task) is None
    assert "Failed to schedule reminder" in caplog.text


def test_cancel_revokes(monkeypatch):
    revoked = []
    monkeypatch.setattr(celery_app.control, "revoke", lambda reminder_id: revoked.append(reminder_id))
    scheduler = CeleryReminderScheduler(enabled=True)

    scheduler.cancel_reminder("celery-7")
    scheduler.cancel_reminder(None)

    assert revoked == ["celery-7"]


@pytest.mark.asyncio
async def test_deliver_reminder_writes_notification(db_session, test_user, test_task):
    delivered = await deliver_reminder(db_session, test_task.id)

    notifications = (await db_session.execute(select(Notification))).scalars().all()
    assert delivered is True
    assert len(notifications) == 1
    assert notifications[0].user_id == test_user.id
    assert notifications[0].task_id == test_task.id
    assert "Water the plants" in notifications[0].message


@pytest.mark.asyncio
async def test_deliver_reminder_skips_completed_task(db_session, test_task):
    test_task.is_completed = True
    await db_session.commit()

    assert await deliver_reminder(db_session, test_task.id) is False
    assert (await db_session.execute(select(Notification))).scalars().all() == []
