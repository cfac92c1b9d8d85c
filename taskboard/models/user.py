"""User, auth session and profile models."""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from taskboard.database import Base
from taskboard.db.types import EncryptedString, GUID


class User(Base):
    """Authenticated principal."""

    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    github_id = Column(String(64), nullable=True, unique=True, index=True)  # GitHub user id
    github_login = Column(String(255), nullable=True)
    github_token = Column(EncryptedString(), nullable=True)  # Linked GitHub access token
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    auth_sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    """Server-side sign-in session; its id is the ``sid`` token claim."""

    __tablename__ = "auth_sessions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="auth_sessions")


class Profile(Base):
    """Editable profile data, created on first sign-in."""

    __tablename__ = "profiles"

    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    surname = Column(String(255), nullable=False, default="")
    avatar = Column(String(1024), nullable=True)  # Avatar image URL
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="profile")
