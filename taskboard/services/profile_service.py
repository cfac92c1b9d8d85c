"""Profile service."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.session import Principal
from taskboard.crud.user import profile as profile_crud
from taskboard.models.user import Profile
from taskboard.schemas.user import ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileService:
    """Profile records kept next to each principal."""

    @staticmethod
    async def ensure_profile(db: AsyncSession, principal: Principal) -> Profile:
        """Create the profile if it is missing; never overwrite an existing one."""
        existing = await profile_crud.get(db, id=principal.id)
        if existing is not None:
            return existing

        try:
            created = await profile_crud.create(
                db,
                obj_in={
                    "user_id": principal.id,
                    "name": principal.display_name or "",
                    "surname": "",
                },
            )
        except IntegrityError:
            # Created concurrently by another sign-in
            await db.rollback()
            return await profile_crud.get(db, id=principal.id)
        logger.info("Created profile for user %s", principal.id)
        return created

    @staticmethod
    async def get_profile(db: AsyncSession, principal: Principal) -> Optional[Profile]:
        return await profile_crud.get(db, id=principal.id)

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        principal: Principal,
        payload: ProfileUpdate,
    ) -> Profile:
        """Write the provided profile fields."""
        current = await ProfileService.ensure_profile(db, principal)
        return await profile_crud.update(db, db_obj=current, obj_in=payload)


profile_service = ProfileService()
