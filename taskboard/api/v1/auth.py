"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_session, get_current_user, get_locale
from taskboard.core.session import Session
from taskboard.models.user import User
from taskboard.services.auth_service import AuthService
from taskboard.services.session_service import session_manager
from taskboard.schemas.auth import TokenResponse
from taskboard.schemas.user import UserCreate, UserResponse
from taskboard.core.exceptions import UnauthorizedError
from taskboard.localization.helpers import get_translation

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Create an account and sign it in."""
    user = await AuthService.register_user(db, payload, locale=locale)
    session = await session_manager.open(db, user)
    return AuthService.create_tokens(user, session.id)


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Login endpoint - returns an access token bound to a new session.

    Supports OAuth2 password flow (form data) where username is the email.
    """
    user = await AuthService.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise UnauthorizedError(get_translation("errors.invalid_credentials", locale))

    session = await session_manager.open(db, user)
    return AuthService.create_tokens(user, session.id)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """End the session; its live subscriptions are cancelled first."""
    await session_manager.close(db, session.id)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Get current authenticated user information."""
    return current_user
