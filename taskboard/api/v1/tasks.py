"""Tasks API endpoints."""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_session, get_locale
from taskboard.core.session import Session
from taskboard.core.notices import notice_on_failure
from taskboard.services.board_service import board_service
from taskboard.services.task_service import task_service
from taskboard.services.views import group_by_board, partition_by_completion, sort_tasks
from taskboard.schemas.board import BoardResponse
from taskboard.schemas.task import (
    BoardAssignment,
    BoardTaskGroup,
    FlagUpdate,
    TaskCreate,
    TaskListView,
    TaskResponse,
    TaskUpdate,
)

router = APIRouter()


@router.get("/", response_model=TaskListView)
async def list_tasks(
    board_id: Optional[UUID] = None,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """All tasks of the signed-in user, sorted and split into open and done."""
    tasks = await task_service.list_tasks(db, session.principal.id, board_id=board_id)
    incomplete, completed = partition_by_completion(sort_tasks(tasks))
    return TaskListView(
        incomplete=[TaskResponse.model_validate(item) for item in incomplete],
        completed=[TaskResponse.model_validate(item) for item in completed],
    )


@router.get("/by-board", response_model=List[BoardTaskGroup])
async def list_tasks_by_board(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Tasks grouped per board; the last group (board null) holds unfiled tasks."""
    boards = await board_service.list_boards(db, session.principal.id)
    tasks = await task_service.list_tasks(db, session.principal.id)
    boards_by_id = {str(item.id): item for item in boards}
    return [
        BoardTaskGroup(
            board=BoardResponse.model_validate(boards_by_id[key]) if key is not None else None,
            tasks=[TaskResponse.model_validate(item) for item in items],
        )
        for key, items in group_by_board(tasks, boards).items()
    ]


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.task_create_failed", locale):
        return await task_service.create_task(db, session.principal.id, payload, locale=locale)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    return await task_service.get_task(db, session.principal.id, task_id, locale=locale)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Edit text, description, deadline or board."""
    with notice_on_failure("notices.task_update_failed", locale):
        return await task_service.update_fields(db, session.principal.id, task_id, payload, locale=locale)


@router.put("/{task_id}/completion", response_model=TaskResponse)
async def set_task_completion(
    task_id: UUID,
    payload: FlagUpdate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.task_update_failed", locale):
        return await task_service.set_completion(db, session.principal.id, task_id, payload.value, locale=locale)


@router.put("/{task_id}/priority", response_model=TaskResponse)
async def set_task_priority(
    task_id: UUID,
    payload: FlagUpdate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.task_update_failed", locale):
        return await task_service.set_priority(db, session.principal.id, task_id, payload.value, locale=locale)


@router.put("/{task_id}/board", response_model=TaskResponse)
async def move_task(
    task_id: UUID,
    payload: BoardAssignment,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Move the task to another of the user's boards, or unfile it."""
    with notice_on_failure("notices.task_move_failed", locale):
        return await task_service.move_to_board(db, session.principal.id, task_id, payload.board_id, locale=locale)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.task_delete_failed", locale):
        await task_service.delete_task(db, session.principal.id, task_id, locale=locale)
