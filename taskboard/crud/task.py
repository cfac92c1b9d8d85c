"""Task CRUD operations."""
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.crud.base import CRUDBase
from taskboard.models.task import Task
from taskboard.schemas.task import TaskCreate, TaskUpdate


class CRUDTask(CRUDBase[Task, TaskCreate, TaskUpdate]):
    """CRUD operations for Task, always scoped by owner."""

    async def get_owned(self, db: AsyncSession, *, id: UUID, owner_id: UUID) -> Optional[Task]:
        """Get a task only if it belongs to ``owner_id``."""
        result = await db.execute(
            select(Task).where(Task.id == id, Task.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def list_for_owner(
        self,
        db: AsyncSession,
        *,
        owner_id: UUID,
        board_id: Optional[UUID] = None,
    ) -> List[Task]:
        """Owner's tasks, newest first, optionally restricted to one board."""
        filters: Dict[str, Any] = {"owner_id": owner_id}
        if board_id is not None:
            filters["board_id"] = board_id
        return await self.get_multi(db, filters=filters, order_by=Task.created_at.desc())

    async def get_by_external_id(
        self,
        db: AsyncSession,
        *,
        owner_id: UUID,
        external_id: str,
    ) -> Optional[Task]:
        result = await db.execute(
            select(Task).where(Task.owner_id == owner_id, Task.external_id == external_id)
        )
        return result.scalar_one_or_none()


task = CRUDTask(Task)
