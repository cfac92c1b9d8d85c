"""Board model."""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid
from taskboard.database import Base
from taskboard.db.types import GUID


# Fixed palette offered when creating or recoloring a board
BOARD_COLORS = [
    "#0366d6",
    "#28a745",
    "#d73a49",
    "#6f42c1",
    "#f66a0a",
    "#ffd33d",
    "#1b7c83",
    "#e36209",
    "#ea4aaa",
    "#586069",
    "#005cc5",
    "#22863a",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Board(Base):
    """Named, colored grouping of tasks owned by one user."""

    __tablename__ = "boards"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    color = Column(String(16), nullable=False, default=BOARD_COLORS[0])
    cover_image = Column(String(1024), nullable=True)  # Cover image URL
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    tasks = relationship("Task", back_populates="board")
