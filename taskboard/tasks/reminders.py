"""Celery tasks for task deadline reminders."""
import asyncio
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskboard.config import settings
from taskboard.localization.helpers import get_translation
from taskboard.models import Notification, Task
from taskboard.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

# Every task run gets its own event loop, so connections are never pooled
engine = create_async_engine(settings.DATABASE_URL, echo=False, poolclass=NullPool)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def deliver_reminder(db: AsyncSession, task_id: UUID) -> bool:
    """Write the in-app notification for a due task.

    Returns False when the task is gone or already completed.
    """
    result = await db.execute(select(Task).where(Task.id == task_id))
    task_obj = result.scalar_one_or_none()
    if task_obj is None or task_obj.is_completed:
        logger.info("Reminder for task %s skipped", task_id)
        return False

    notification = Notification(
        user_id=task_obj.owner_id,
        task_id=task_obj.id,
        title=get_translation("reminders.title"),
        message=get_translation("reminders.message", text=task_obj.text),
    )
    db.add(notification)
    await db.commit()
    logger.info("Reminder delivered for task %s to user %s", task_obj.id, task_obj.owner_id)
    return True


@celery_app.task
def send_task_reminder(task_id: str):
    """Notify the owner that a task deadline has arrived."""
    async def _send():
        async with AsyncSessionLocal() as db:
            return await deliver_reminder(db, UUID(task_id))

    return asyncio.run(_send())
