"""Authentication service."""
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import settings
from taskboard.core.exceptions import ConflictError
from taskboard.crud.user import user as user_crud
from taskboard.localization.helpers import get_translation
from taskboard.models.user import User
from taskboard.schemas.auth import TokenResponse
from taskboard.schemas.user import UserCreate
from taskboard.utils.security import create_access_token, verify_password


class AuthService:
    """Authentication service."""

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate a user by email and password."""
        user = await user_crud.get_by_email(db, email=email.strip().lower())

        if not user:
            return None

        if not verify_password(password, user.password_hash):
            return None

        if not user.is_active:
            return None

        return user

    @staticmethod
    async def register_user(db: AsyncSession, payload: UserCreate, locale: str = "en") -> User:
        """Create an account; the email must not be taken."""
        payload = payload.model_copy(update={"email": payload.email.lower()})
        if await user_crud.get_by_email(db, email=payload.email):
            raise ConflictError(get_translation("errors.email_in_use", locale))
        try:
            return await user_crud.create(db, obj_in=payload)
        except IntegrityError:
            await db.rollback()
            raise ConflictError(get_translation("errors.email_in_use", locale))

    @staticmethod
    def create_tokens(user: User, session_id: UUID) -> TokenResponse:
        """Create the access token of one sign-in session."""
        access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={"sub": str(user.id), "sid": str(session_id), "email": user.email},
            expires_delta=access_token_expires,
        )
        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )


auth_service = AuthService()
