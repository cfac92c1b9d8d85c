"""Notifications API endpoints."""
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_session, get_locale
from taskboard.core.session import Session
from taskboard.core.exceptions import NotFoundError
from taskboard.models.notification import Notification
from taskboard.schemas.notification import NotificationResponse

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Reminders and other notices for the signed-in user, newest first."""
    query = select(Notification).where(Notification.user_id == session.principal.id)
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    result = await db.execute(query.order_by(Notification.created_at.desc()))
    return result.scalars().all()


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != session.principal.id:
        raise NotFoundError(locale=locale)
    notification.is_read = True
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification
