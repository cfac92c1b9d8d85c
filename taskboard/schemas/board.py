"""Board schemas."""
from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel

from taskboard.models.board import BOARD_COLORS


class BoardCreate(BaseModel):
    """Board creation schema."""

    name: str
    color: str = BOARD_COLORS[0]
    cover_image: Optional[str] = None


class BoardUpdate(BaseModel):
    """Board update schema; only fields that are sent get written."""

    name: Optional[str] = None
    color: Optional[str] = None
    cover_image: Optional[str] = None


class BoardResponse(BaseModel):
    """Board response schema."""

    id: UUID
    owner_id: UUID
    name: str
    color: str
    cover_image: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
