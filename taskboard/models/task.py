"""Task model."""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid
from taskboard.database import Base
from taskboard.db.types import GUID
from taskboard.models.board import _utcnow


class Task(Base):
    """To-do item, optionally filed under a board and optionally imported from GitHub."""

    __tablename__ = "tasks"
    __table_args__ = (
        # One local task per imported issue and owner
        UniqueConstraint("owner_id", "external_id", name="uq_tasks_owner_external_id"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    board_id = Column(GUID(), ForeignKey("boards.id"), nullable=True, index=True)
    text = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    is_prioritized = Column(Boolean, default=False, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=True, index=True)
    external_id = Column(String(64), nullable=True, index=True)  # GitHub issue id
    reminder_id = Column(String(255), nullable=True)  # Scheduled reminder handle
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    board = relationship("Board", back_populates="tasks")
