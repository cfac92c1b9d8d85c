"""Database models."""
from taskboard.models.user import User, AuthSession, Profile
from taskboard.models.board import Board, BOARD_COLORS
from taskboard.models.task import Task
from taskboard.models.notification import Notification

__all__ = [
    "User",
    "AuthSession",
    "Profile",
    "Board",
    "BOARD_COLORS",
    "Task",
    "Notification",
]
