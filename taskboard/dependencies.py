"""FastAPI dependencies for authentication and sessions."""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.exceptions import UnauthorizedError
from taskboard.core.session import Session
from taskboard.database import get_db
from taskboard.localization.helpers import get_locale_from_request, get_translation
from taskboard.models.user import User
from taskboard.services.session_service import session_manager
from taskboard.utils.security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_locale(request: Request) -> str:
    """Locale chosen from the Accept-Language header."""
    return get_locale_from_request(request)


async def resolve_session_token(db: AsyncSession, token: str, locale: str = "en") -> Session:
    """Return the signed-in session an access token belongs to."""
    credentials_exception = UnauthorizedError(locale=locale)

    try:
        payload = decode_token(token)
    except ValueError:
        raise credentials_exception

    if payload.get("type") != "access" or not payload.get("sub") or not payload.get("sid"):
        raise credentials_exception

    try:
        session_id = UUID(payload["sid"])
    except ValueError:
        raise credentials_exception

    session = await session_manager.resolve(db, session_id)
    if session is None or str(session.principal.id) != payload["sub"]:
        raise UnauthorizedError(get_translation("errors.session_ended", locale), locale=locale)
    return session


async def get_current_session(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
) -> Session:
    """Get the signed-in session from the bearer token."""
    return await resolve_session_token(db, token, locale)


async def get_optional_session(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
) -> Optional[Session]:
    """Like :func:`get_current_session`, but anonymous requests get None."""
    if not token:
        return None
    return await resolve_session_token(db, token, locale)


async def get_current_user(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
) -> User:
    """Get current authenticated user."""
    user = await db.get(User, session.principal.id)
    if user is None or not user.is_active:
        raise UnauthorizedError(locale=locale)
    return user
