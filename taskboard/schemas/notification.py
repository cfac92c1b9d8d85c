"""Notification schemas."""
from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel


class NotificationResponse(BaseModel):
    """Notification response schema."""

    id: UUID
    task_id: Optional[UUID] = None
    title: str
    message: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
