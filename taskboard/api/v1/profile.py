"""Profile API endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_session, get_locale
from taskboard.core.session import Session
from taskboard.core.notices import notice_on_failure
from taskboard.services.profile_service import profile_service
from taskboard.schemas.user import ProfileResponse, ProfileUpdate

router = APIRouter()


@router.get("/", response_model=ProfileResponse)
async def get_profile(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Profile of the signed-in user, created on demand."""
    return await profile_service.ensure_profile(db, session.principal)


@router.patch("/", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Update name, surname or avatar URL."""
    with notice_on_failure("notices.profile_update_failed", locale):
        return await profile_service.update_profile(db, session.principal, payload)
