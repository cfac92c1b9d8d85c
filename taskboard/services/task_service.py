"""Task mutations, always scoped to the owner's records."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskboard.crud.board import board as board_crud
from taskboard.crud.task import task as task_crud
from taskboard.localization.helpers import get_translation
from taskboard.models.task import Task
from taskboard.schemas.task import TaskCreate, TaskUpdate
from taskboard.services.reminder_service import ReminderScheduler, reminder_scheduler
from taskboard.services.subscription_service import ChangeFeed, change_feed

logger = logging.getLogger(__name__)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Deadlines are stored in UTC; naive input is taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TaskService:
    """Create, edit, move and delete tasks, then refresh live queries."""

    def __init__(self, feed: ChangeFeed, reminders: ReminderScheduler):
        self.feed = feed
        self.reminders = reminders

    async def get_task(self, db: AsyncSession, owner_id: UUID, task_id: UUID, locale: str = "en") -> Task:
        task_obj = await task_crud.get_owned(db, id=task_id, owner_id=owner_id)
        if task_obj is None:
            raise NotFoundError(get_translation("errors.task_not_found", locale))
        return task_obj

    async def list_tasks(
        self,
        db: AsyncSession,
        owner_id: UUID,
        board_id: Optional[UUID] = None,
    ) -> List[Task]:
        return await task_crud.list_for_owner(db, owner_id=owner_id, board_id=board_id)

    async def _check_board(
        self,
        db: AsyncSession,
        owner_id: UUID,
        board_id: Optional[UUID],
        locale: str,
    ) -> None:
        """A task may only be filed under a board of its own owner."""
        if board_id is None:
            return
        board_obj = await board_crud.get_owned(db, id=board_id, owner_id=owner_id)
        if board_obj is None:
            raise ForbiddenError(get_translation("errors.board_not_owned", locale))

    @staticmethod
    def _check_text(text: Optional[str], locale: str) -> str:
        if text is None or not text.strip():
            raise ValidationError(get_translation("errors.task_text_required", locale))
        return text.strip()

    async def _reschedule(self, db: AsyncSession, task_obj: Task) -> None:
        """Replace the task's reminder to match its current deadline and state."""
        self.reminders.cancel_reminder(task_obj.reminder_id)
        reminder_id = self.reminders.schedule_reminder(task_obj)
        if reminder_id != task_obj.reminder_id:
            task_obj.reminder_id = reminder_id
            db.add(task_obj)
            await db.commit()
            await db.refresh(task_obj)

    async def create_task(
        self,
        db: AsyncSession,
        owner_id: UUID,
        payload: TaskCreate,
        locale: str = "en",
    ) -> Task:
        text = self._check_text(payload.text, locale)
        await self._check_board(db, owner_id, payload.board_id, locale)

        task_obj = await task_crud.create(
            db,
            obj_in={
                "owner_id": owner_id,
                "board_id": payload.board_id,
                "text": text,
                "description": payload.description,
                "deadline": to_utc(payload.deadline),
            },
        )
        if task_obj.deadline is not None:
            await self._reschedule(db, task_obj)

        logger.info("Task %s created for user %s", task_obj.id, owner_id)
        await self.feed.publish("tasks", owner_id)
        return task_obj

    async def set_completion(
        self,
        db: AsyncSession,
        owner_id: UUID,
        task_id: UUID,
        value: bool,
        locale: str = "en",
    ) -> Task:
        """Mark done or not done. Writing the current value changes nothing."""
        task_obj = await self.get_task(db, owner_id, task_id, locale)
        was_completed = task_obj.is_completed
        task_obj = await task_crud.update(db, db_obj=task_obj, obj_in={"is_completed": value})

        if value and not was_completed:
            self.reminders.cancel_reminder(task_obj.reminder_id)
            if task_obj.reminder_id is not None:
                task_obj = await task_crud.update(db, db_obj=task_obj, obj_in={"reminder_id": None})
        elif not value and was_completed and task_obj.deadline is not None:
            await self._reschedule(db, task_obj)

        await self.feed.publish("tasks", owner_id)
        return task_obj

    async def set_priority(
        self,
        db: AsyncSession,
        owner_id: UUID,
        task_id: UUID,
        value: bool,
        locale: str = "en",
    ) -> Task:
        task_obj = await self.get_task(db, owner_id, task_id, locale)
        task_obj = await task_crud.update(db, db_obj=task_obj, obj_in={"is_prioritized": value})
        await self.feed.publish("tasks", owner_id)
        return task_obj

    async def move_to_board(
        self,
        db: AsyncSession,
        owner_id: UUID,
        task_id: UUID,
        new_board_id: Optional[UUID],
        locale: str = "en",
    ) -> Task:
        """File the task under another board of the same owner; None unfiles it."""
        task_obj = await self.get_task(db, owner_id, task_id, locale)
        await self._check_board(db, task_obj.owner_id, new_board_id, locale)
        task_obj = await task_crud.update(db, db_obj=task_obj, obj_in={"board_id": new_board_id})
        logger.info("Task %s moved to board %s", task_obj.id, new_board_id)
        await self.feed.publish("tasks", owner_id)
        return task_obj

    async def update_fields(
        self,
        db: AsyncSession,
        owner_id: UUID,
        task_id: UUID,
        payload: TaskUpdate,
        locale: str = "en",
    ) -> Task:
        task_obj = await self.get_task(db, owner_id, task_id, locale)
        data = payload.model_dump(exclude_unset=True)

        if "text" in data:
            data["text"] = self._check_text(data["text"], locale)
        if data.get("board_id") is not None:
            await self._check_board(db, task_obj.owner_id, data["board_id"], locale)
        deadline_changed = False
        if "deadline" in data:
            data["deadline"] = to_utc(data["deadline"])
            deadline_changed = to_utc(task_obj.deadline) != data["deadline"]

        task_obj = await task_crud.update(db, db_obj=task_obj, obj_in=data)
        if deadline_changed:
            await self._reschedule(db, task_obj)

        await self.feed.publish("tasks", owner_id)
        return task_obj

    async def delete_task(
        self,
        db: AsyncSession,
        owner_id: UUID,
        task_id: UUID,
        locale: str = "en",
    ) -> None:
        task_obj = await self.get_task(db, owner_id, task_id, locale)
        self.reminders.cancel_reminder(task_obj.reminder_id)
        await db.delete(task_obj)
        await db.commit()
        logger.info("Task %s deleted", task_id)
        await self.feed.publish("tasks", owner_id)


task_service = TaskService(change_feed, reminder_scheduler)
