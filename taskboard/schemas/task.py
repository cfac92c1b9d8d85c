"""Task schemas."""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from datetime import datetime

from taskboard.schemas.board import BoardResponse


class TaskCreate(BaseModel):
    """Task creation schema."""

    text: str
    description: Optional[str] = None
    board_id: Optional[UUID] = None
    deadline: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Partial task update; unset fields are left untouched."""

    text: Optional[str] = None
    description: Optional[str] = None
    board_id: Optional[UUID] = None
    deadline: Optional[datetime] = None


class FlagUpdate(BaseModel):
    """Completion or priority flag."""

    value: bool


class BoardAssignment(BaseModel):
    """Target board of a move; ``None`` unfiles the task."""

    board_id: Optional[UUID] = None


class TaskResponse(BaseModel):
    """Task response schema."""

    id: UUID
    owner_id: UUID
    board_id: Optional[UUID] = None
    text: str
    description: Optional[str] = None
    is_completed: bool = False
    is_prioritized: bool = False
    deadline: Optional[datetime] = None
    external_id: Optional[str] = None
    reminder_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskListView(BaseModel):
    """Sorted tasks split into open and done."""

    incomplete: List[TaskResponse] = Field(default_factory=list)
    completed: List[TaskResponse] = Field(default_factory=list)


class BoardTaskGroup(BaseModel):
    """Tasks of one board; ``board`` is None for unfiled tasks."""

    board: Optional[BoardResponse] = None
    tasks: List[TaskResponse] = Field(default_factory=list)
