"""Live sign-in sessions of this process."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.session import Principal, Session
from taskboard.models.user import AuthSession, User
from taskboard.services.profile_service import profile_service

logger = logging.getLogger(__name__)


class SessionManager:
    """Maps auth session ids to live :class:`Session` objects.

    Sessions are persisted as ``AuthSession`` rows so a token stays valid
    across restarts until it is revoked by signing out.
    """

    def __init__(self) -> None:
        self._sessions: Dict[UUID, Session] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}

    async def open(self, db: AsyncSession, user: User) -> Session:
        """Start a new sign-in session for ``user``."""
        record = AuthSession(user_id=user.id)
        db.add(record)
        await db.commit()
        await db.refresh(record)
        logger.info("Opened session %s for user %s", record.id, user.id)
        async with self._lock(record.id):
            return await self._activate(db, record.id, user)

    async def resolve(self, db: AsyncSession, session_id: UUID) -> Optional[Session]:
        """Return the signed-in session for ``session_id`` or None if it has ended.

        Concurrent calls for one id share a single live ``Session``, so
        closing it reaches every subscription opened through it.
        """
        async with self._lock(session_id):
            session = self._sessions.get(session_id)
            if session is not None and session.is_signed_in:
                return session

            record = await db.get(AuthSession, session_id)
            if record is None or record.revoked_at is not None:
                return None
            user = await db.get(User, record.user_id)
            if user is None or not user.is_active:
                return None
            return await self._activate(db, record.id, user)

    def get(self, session_id: UUID) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def close(self, db: AsyncSession, session_id: UUID) -> None:
        """Revoke the session and sign it out, flushing its subscriptions."""
        async with self._lock(session_id):
            session = self._sessions.pop(session_id, None)
            if session is not None:
                session.sign_out()

            record = await db.get(AuthSession, session_id)
            if record is not None and record.revoked_at is None:
                record.revoked_at = datetime.now(timezone.utc)
                db.add(record)
                await db.commit()
        self._locks.pop(session_id, None)
        logger.info("Closed session %s", session_id)

    def _lock(self, session_id: UUID) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def _activate(self, db: AsyncSession, session_id: UUID, user: User) -> Session:
        session = Session(
            session_id=session_id,
            ensure_profile=partial(_ensure_profile, db),
        )
        self._sessions[session_id] = session
        await session.sign_in(Principal.from_user(user))
        return session


async def _ensure_profile(db: AsyncSession, principal: Principal) -> None:
    try:
        await profile_service.ensure_profile(db, principal)
    except SQLAlchemyError:
        await db.rollback()
        raise


session_manager = SessionManager()
