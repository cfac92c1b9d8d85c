"""Calendar API endpoints."""
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.config import settings
from taskboard.database import get_db
from taskboard.dependencies import get_current_session
from taskboard.core.session import Session
from taskboard.services.board_service import board_service
from taskboard.services.task_service import task_service
from taskboard.services.views import calendar_view
from taskboard.schemas.calendar import CalendarResponse

router = APIRouter()


@router.get("/", response_model=CalendarResponse)
async def get_calendar(
    today: Optional[date] = None,
    selected: Optional[date] = None,
    accent: Optional[str] = None,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Deadline buckets, day markers and the tasks of the selected day."""
    if today is None:
        today = datetime.now(ZoneInfo(settings.TIMEZONE)).date()
    boards = await board_service.list_boards(db, session.principal.id)
    tasks = await task_service.list_tasks(db, session.principal.id)
    return calendar_view(
        tasks,
        boards,
        today_key=today.isoformat(),
        accent_color=accent or settings.DEFAULT_ACCENT_COLOR,
        selected_key=selected.isoformat() if selected else None,
    )
