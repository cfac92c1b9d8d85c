"""Tests for task and board mutations."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from taskboard.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskboard.models.board import Board
from taskboard.models.task import Task
from taskboard.schemas.board import BoardCreate, BoardUpdate
from taskboard.schemas.task import TaskCreate, TaskUpdate
from taskboard.services.board_service import BoardService
from taskboard.services.task_service import TaskService


@pytest.fixture
def tasks(feed, reminders):
    return TaskService(feed, reminders)


@pytest.fixture
def boards(feed, reminders):
    return BoardService(feed, reminders)


def future(days=2):
    return datetime.now(timezone.utc) + timedelta(days=days)


async def count_tasks(db, **filters):
    query = select(func.count()).select_from(Task)
    for field, value in filters.items():
        query = query.where(getattr(Task, field) == value)
    return (await db.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_create_task_on_own_board(tasks, db_session, test_user, test_board):
    created = await tasks.create_task(
        db_session,
        test_user.id,
        TaskCreate(text="  Buy milk  ", board_id=test_board.id),
    )

    assert created.text == "Buy milk"
    assert created.board_id == test_board.id
    assert created.is_completed is False
    assert created.is_prioritized is False


@pytest.mark.asyncio
async def test_create_task_requires_text(tasks, db_session, test_user):
    with pytest.raises(ValidationError):
        await tasks.create_task(db_session, test_user.id, TaskCreate(text="   "))
    assert await count_tasks(db_session) == 0


@pytest.mark.asyncio
async def test_create_task_with_deadline_schedules_reminder(tasks, reminders, db_session, test_user):
    created = await tasks.create_task(db_session, test_user.id, TaskCreate(text="Call mom", deadline=future()))

    assert created.reminder_id == "reminder-1"
    assert reminders.scheduled == [(created.id, "reminder-1")]


@pytest.mark.asyncio
async def test_completion_is_idempotent(tasks, db_session, test_user, test_task):
    first = await tasks.set_completion(db_session, test_user.id, test_task.id, True)
    snapshot = (first.text, first.board_id, first.is_completed, first.is_prioritized)
    second = await tasks.set_completion(db_session, test_user.id, test_task.id, True)

    assert (second.text, second.board_id, second.is_completed, second.is_prioritized) == snapshot
    assert second.is_completed is True


@pytest.mark.asyncio
async def test_priority_is_idempotent(tasks, db_session, test_user, test_task):
    await tasks.set_priority(db_session, test_user.id, test_task.id, True)
    again = await tasks.set_priority(db_session, test_user.id, test_task.id, True)

    assert again.is_prioritized is True
    assert again.is_completed is False


@pytest.mark.asyncio
async def test_completing_cancels_and_reopening_reschedules(tasks, reminders, db_session, test_user):
    created = await tasks.create_task(db_session, test_user.id, TaskCreate(text="Pay rent", deadline=future()))

    done = await tasks.set_completion(db_session, test_user.id, created.id, True)
    assert reminders.cancelled == ["reminder-1"]
    assert done.reminder_id is None

    reopened = await tasks.set_completion(db_session, test_user.id, created.id, False)
    assert reopened.reminder_id == "reminder-2"


@pytest.mark.asyncio
async def test_move_to_own_board(tasks, db_session, test_user, test_board, test_task):
    second = Board(owner_id=test_user.id, name="Work", color="#d73a49")
    db_session.add(second)
    await db_session.commit()

    moved = await tasks.move_to_board(db_session, test_user.id, test_task.id, second.id)
    assert moved.board_id == second.id

    unfiled = await tasks.move_to_board(db_session, test_user.id, test_task.id, None)
    assert unfiled.board_id is None


@pytest.mark.asyncio
async def test_move_to_foreign_board_is_refused(tasks, db_session, test_user, other_user, test_board, test_task):
    foreign = Board(owner_id=other_user.id, name="Not yours", color="#d73a49")
    db_session.add(foreign)
    await db_session.commit()

    with pytest.raises(ForbiddenError):
        await tasks.move_to_board(db_session, test_user.id, test_task.id, foreign.id)
    with pytest.raises(ForbiddenError):
        await tasks.move_to_board(db_session, test_user.id, test_task.id, uuid.uuid4())

    await db_session.refresh(test_task)
    assert test_task.board_id == test_board.id


@pytest.mark.asyncio
async def test_foreign_task_is_not_found(tasks, db_session, other_user, test_task):
    with pytest.raises(NotFoundError):
        await tasks.set_completion(db_session, other_user.id, test_task.id, True)
    with pytest.raises(NotFoundError):
        await tasks.delete_task(db_session, other_user.id, test_task.id)


@pytest.mark.asyncio
async def test_update_fields_partial(tasks, reminders, db_session, test_user, test_task):
    updated = await tasks.update_fields(
        db_session,
        test_user.id,
        test_task.id,
        TaskUpdate(description="Both balconies", deadline=future(3)),
    )

    assert updated.text == "Water the plants"
    assert updated.description == "Both balconies"
    assert updated.reminder_id == "reminder-1"

    with pytest.raises(ValidationError):
        await tasks.update_fields(db_session, test_user.id, test_task.id, TaskUpdate(text=""))


@pytest.mark.asyncio
async def test_delete_task_cancels_reminder(tasks, reminders, db_session, test_user):
    created = await tasks.create_task(db_session, test_user.id, TaskCreate(text="Dentist", deadline=future()))

    await tasks.delete_task(db_session, test_user.id, created.id)

    assert reminders.cancelled == ["reminder-1"]
    assert await count_tasks(db_session) == 0


@pytest.mark.asyncio
async def test_mutations_refresh_live_queries(tasks, feed, db_session, test_user, user_session):
    snapshots = []
    await feed.subscribe(user_session, "tasks", None, snapshots.append)

    created = await tasks.create_task(db_session, test_user.id, TaskCreate(text="Live"))
    await tasks.set_priority(db_session, test_user.id, created.id, True)

    assert [len(items) for items in snapshots] == [0, 1, 1]
    assert snapshots[-1][0].is_prioritized is True


@pytest.mark.asyncio
async def test_board_palette_and_name_are_enforced(boards, db_session, test_user):
    with pytest.raises(ValidationError):
        await boards.create_board(db_session, test_user.id, BoardCreate(name="Pink", color="#ff00ff"))
    with pytest.raises(ValidationError):
        await boards.create_board(db_session, test_user.id, BoardCreate(name=" "))

    board = await boards.create_board(db_session, test_user.id, BoardCreate(name="Garden", color="#28A745"))
    assert board.color == "#28a745"

    renamed = await boards.update_board(db_session, test_user.id, board.id, BoardUpdate(name="Yard"))
    assert renamed.name == "Yard"
    assert renamed.color == "#28a745"


@pytest.mark.asyncio
async def test_cascade_delete_removes_board_and_its_tasks(boards, reminders, db_session, test_user, test_board):
    for index in range(3):
        db_session.add(
            Task(
                owner_id=test_user.id,
                board_id=test_board.id,
                text=f"task {index}",
                reminder_id=f"r-{index}",
            )
        )
    db_session.add(Task(owner_id=test_user.id, text="unfiled"))
    await db_session.commit()

    deleted = await boards.delete_board_cascade(db_session, test_user.id, test_board.id)

    assert deleted == 3
    assert await count_tasks(db_session, board_id=test_board.id) == 0
    assert await count_tasks(db_session) == 1
    remaining = await db_session.execute(select(func.count()).select_from(Board).where(Board.id == test_board.id))
    assert remaining.scalar_one() == 0
    assert sorted(reminders.cancelled) == ["r-0", "r-1", "r-2"]


@pytest.mark.asyncio
async def test_cascade_delete_of_empty_board(boards, reminders, db_session, test_user, test_board):
    deleted = await boards.delete_board_cascade(db_session, test_user.id, test_board.id)

    assert deleted == 0
    assert reminders.cancelled == []
    assert await boards.list_boards(db_session, test_user.id) == []


@pytest.mark.asyncio
async def test_cascade_delete_of_foreign_board(boards, db_session, other_user, test_board, test_task):
    with pytest.raises(NotFoundError):
        await boards.delete_board_cascade(db_session, other_user.id, test_board.id)
    assert await count_tasks(db_session) == 1
