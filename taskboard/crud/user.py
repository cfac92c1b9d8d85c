"""User CRUD operations."""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from taskboard.crud.base import CRUDBase
from taskboard.models.user import User, Profile
from taskboard.schemas.user import UserCreate, ProfileUpdate
from taskboard.utils.security import get_password_hash


class CRUDUser(CRUDBase[User, UserCreate, dict]):
    """CRUD operations for User."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get user by email."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_github_id(self, db: AsyncSession, *, github_id: str) -> Optional[User]:
        """Get the user a GitHub identity is linked to."""
        result = await db.execute(select(User).where(User.github_id == github_id))
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, *, obj_in: UserCreate) -> User:
        """Create a new user with a hashed password."""
        user_data = obj_in.model_dump(exclude={"password"})
        user_data["password_hash"] = get_password_hash(obj_in.password)
        db_obj = User(**user_data)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


class CRUDProfile(CRUDBase[Profile, dict, ProfileUpdate]):
    """CRUD operations for Profile."""

    pass


user = CRUDUser(User)
profile = CRUDProfile(Profile)
