"""Calendar view schemas."""
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class MarkerDot(BaseModel):
    """One dot per board color present on a day."""

    key: str
    color: str


class DateMarker(BaseModel):
    """Rendering-agnostic marking of one calendar day."""

    marked: bool = False
    selected: bool = False
    selected_color: Optional[str] = None
    dots: List[MarkerDot] = Field(default_factory=list)


class CalendarEntry(BaseModel):
    """Task as shown in a calendar day."""

    id: UUID
    name: str
    color: str
    board_id: Optional[UUID] = None
    is_prioritized: bool = False


class CalendarResponse(BaseModel):
    """Calendar buckets, markers and the selected day."""

    today: date
    selected_date: date
    buckets: Dict[str, List[CalendarEntry]] = Field(default_factory=dict)
    markers: Dict[str, DateMarker] = Field(default_factory=dict)
    selected_tasks: List[CalendarEntry] = Field(default_factory=list)
