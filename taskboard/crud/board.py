"""Board CRUD operations."""
from typing import List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.crud.base import CRUDBase
from taskboard.models.board import Board
from taskboard.schemas.board import BoardCreate, BoardUpdate


class CRUDBoard(CRUDBase[Board, BoardCreate, BoardUpdate]):
    """CRUD operations for Board, always scoped by owner."""

    async def get_owned(self, db: AsyncSession, *, id: UUID, owner_id: UUID) -> Optional[Board]:
        """Get a board only if it belongs to ``owner_id``."""
        result = await db.execute(
            select(Board).where(Board.id == id, Board.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def list_for_owner(self, db: AsyncSession, *, owner_id: UUID) -> List[Board]:
        return await self.get_multi(
            db,
            filters={"owner_id": owner_id},
            order_by=Board.created_at.asc(),
        )


board = CRUDBoard(Board)
