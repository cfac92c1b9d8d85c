"""Pytest configuration and fixtures."""
import os
import uuid
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DB_PATH = Path("test_app.db")
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()

TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("REMINDERS_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("ENCRYPTION_SECRET", "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE=")

from taskboard.main import app  # noqa: E402
from taskboard.database import Base, get_db  # noqa: E402
from taskboard.models.board import Board  # noqa: E402
from taskboard.models.task import Task  # noqa: E402
from taskboard.models.user import User  # noqa: E402
from taskboard.services.auth_service import AuthService  # noqa: E402
from taskboard.services.session_service import session_manager  # noqa: E402
from taskboard.services.subscription_service import ChangeFeed, change_feed  # noqa: E402
from taskboard.utils.security import get_password_hash  # noqa: E402


# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class RecordingReminders:
    """Reminder scheduler double that remembers what it was asked to do."""

    def __init__(self):
        self.scheduled = []
        self.cancelled = []

    def schedule_reminder(self, task):
        if task.deadline is None or task.is_completed:
            return None
        reminder_id = f"reminder-{len(self.scheduled) + 1}"
        self.scheduled.append((task.id, reminder_id))
        return reminder_id

    def cancel_reminder(self, reminder_id):
        if reminder_id:
            self.cancelled.append(reminder_id)


@pytest_asyncio.fixture(scope="function")
async def db_session(monkeypatch):
    """Create a test database session on a fresh schema."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Live queries read through the same database as the test
    monkeypatch.setattr(change_feed, "_session_factory", TestSessionLocal)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession):
    """Create an async test client overriding the database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def reminders():
    return RecordingReminders()


async def _make_user(db: AsyncSession, email: str, display_name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=get_password_hash("testpassword"),
        display_name=display_name,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession):
    """Create a test user."""
    return await _make_user(db_session, "test@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession):
    """Create a second user owning nothing of the first."""
    return await _make_user(db_session, "other@example.com", "Other User")


@pytest_asyncio.fixture
async def test_board(db_session: AsyncSession, test_user: User):
    """Create a board of the test user."""
    board = Board(owner_id=test_user.id, name="Home", color="#28a745")
    db_session.add(board)
    await db_session.commit()
    await db_session.refresh(board)
    return board


@pytest_asyncio.fixture
async def test_task(db_session: AsyncSession, test_user: User, test_board: Board):
    """Create an open task on the test board."""
    task = Task(owner_id=test_user.id, board_id=test_board.id, text="Water the plants")
    db_session.add(task)
    await db_session.commit()
    await db_session.refresh(task)
    return task


@pytest_asyncio.fixture
async def user_session(db_session: AsyncSession, test_user: User):
    """Signed-in session of the test user."""
    session = await session_manager.open(db_session, test_user)
    yield session
    await session_manager.close(db_session, session.id)


@pytest_asyncio.fixture
async def auth_headers(user_session, test_user):
    """Get authentication headers."""
    token = AuthService.create_tokens(test_user, user_session.id)
    return {"Authorization": f"Bearer {token.access_token}"}


@pytest.fixture
def feed(db_session):
    """Change feed private to one test."""
    return ChangeFeed(TestSessionLocal)
