"""Board mutations, including the cascading delete."""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.exceptions import NotFoundError, ValidationError
from taskboard.crud.board import board as board_crud
from taskboard.localization.helpers import get_translation
from taskboard.models.board import BOARD_COLORS, Board
from taskboard.models.task import Task
from taskboard.schemas.board import BoardCreate, BoardUpdate
from taskboard.services.reminder_service import ReminderScheduler, reminder_scheduler
from taskboard.services.subscription_service import ChangeFeed, change_feed

logger = logging.getLogger(__name__)


class BoardService:
    """Board operations; every write refreshes the owner's live queries."""

    def __init__(self, feed: ChangeFeed, reminders: ReminderScheduler):
        self.feed = feed
        self.reminders = reminders

    @staticmethod
    def _check_name(name: Optional[str], locale: str) -> str:
        if name is None or not name.strip():
            raise ValidationError(get_translation("errors.board_name_required", locale))
        return name.strip()

    @staticmethod
    def _check_color(color: str, locale: str) -> str:
        if color.lower() not in BOARD_COLORS:
            raise ValidationError(get_translation("errors.board_color_invalid", locale))
        return color.lower()

    async def get_board(self, db: AsyncSession, owner_id: UUID, board_id: UUID, locale: str = "en") -> Board:
        board_obj = await board_crud.get_owned(db, id=board_id, owner_id=owner_id)
        if board_obj is None:
            raise NotFoundError(get_translation("errors.board_not_found", locale))
        return board_obj

    async def list_boards(self, db: AsyncSession, owner_id: UUID) -> List[Board]:
        return await board_crud.list_for_owner(db, owner_id=owner_id)

    async def create_board(
        self,
        db: AsyncSession,
        owner_id: UUID,
        payload: BoardCreate,
        locale: str = "en",
    ) -> Board:
        board_obj = await board_crud.create(
            db,
            obj_in={
                "owner_id": owner_id,
                "name": self._check_name(payload.name, locale),
                "color": self._check_color(payload.color, locale),
                "cover_image": payload.cover_image,
            },
        )
        logger.info("Board %s created for user %s", board_obj.id, owner_id)
        await self.feed.publish("boards", owner_id)
        return board_obj

    async def update_board(
        self,
        db: AsyncSession,
        owner_id: UUID,
        board_id: UUID,
        payload: BoardUpdate,
        locale: str = "en",
    ) -> Board:
        board_obj = await self.get_board(db, owner_id, board_id, locale)
        data = payload.model_dump(exclude_unset=True)
        if "name" in data:
            data["name"] = self._check_name(data["name"], locale)
        if "color" in data:
            data["color"] = self._check_color(data["color"] or "", locale)

        board_obj = await board_crud.update(db, db_obj=board_obj, obj_in=data)
        await self.feed.publish("boards", owner_id)
        return board_obj

    async def delete_board_cascade(
        self,
        db: AsyncSession,
        owner_id: UUID,
        board_id: UUID,
        locale: str = "en",
    ) -> int:
        """Delete the board and every task filed under it in one transaction.

        Returns the number of deleted tasks. Reminders of those tasks are
        cancelled only once the transaction has committed.
        """
        board_obj = await self.get_board(db, owner_id, board_id, locale)

        result = await db.execute(
            select(Task.id, Task.reminder_id).where(
                Task.owner_id == owner_id,
                Task.board_id == board_obj.id,
            )
        )
        rows = result.all()
        task_ids = [row.id for row in rows]
        reminder_ids = [row.reminder_id for row in rows if row.reminder_id]

        try:
            if task_ids:
                await db.execute(
                    delete(Task)
                    .where(Task.id.in_(task_ids))
                    .execution_options(synchronize_session=False)
                )
            await db.execute(
                delete(Board)
                .where(Board.id == board_obj.id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        for reminder_id in reminder_ids:
            self.reminders.cancel_reminder(reminder_id)

        logger.info("Board %s deleted with %d tasks", board_id, len(task_ids))
        await self.feed.publish("tasks", owner_id)
        await self.feed.publish("boards", owner_id)
        return len(task_ids)


board_service = BoardService(change_feed, reminder_scheduler)
