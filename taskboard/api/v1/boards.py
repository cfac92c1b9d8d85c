"""Boards API endpoints."""
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_session, get_locale
from taskboard.core.session import Session
from taskboard.core.notices import notice_on_failure
from taskboard.services.board_service import board_service
from taskboard.services.task_service import task_service
from taskboard.services.views import partition_by_completion, sort_tasks
from taskboard.schemas.board import BoardCreate, BoardResponse, BoardUpdate
from taskboard.schemas.task import TaskListView, TaskResponse

router = APIRouter()


@router.get("/", response_model=List[BoardResponse])
async def list_boards(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    """Boards of the signed-in user, oldest first."""
    return await board_service.list_boards(db, session.principal.id)


@router.post("/", response_model=BoardResponse, status_code=status.HTTP_201_CREATED)
async def create_board(
    payload: BoardCreate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.board_create_failed", locale):
        return await board_service.create_board(db, session.principal.id, payload, locale=locale)


@router.patch("/{board_id}", response_model=BoardResponse)
async def update_board(
    board_id: UUID,
    payload: BoardUpdate,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    with notice_on_failure("notices.board_update_failed", locale):
        return await board_service.update_board(db, session.principal.id, board_id, payload, locale=locale)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: UUID,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Delete the board together with all of its tasks."""
    with notice_on_failure("notices.board_delete_failed", locale):
        await board_service.delete_board_cascade(db, session.principal.id, board_id, locale=locale)


@router.get("/{board_id}/tasks", response_model=TaskListView)
async def list_board_tasks(
    board_id: UUID,
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Tasks of one board, sorted and split into open and done."""
    board_obj = await board_service.get_board(db, session.principal.id, board_id, locale=locale)
    tasks = await task_service.list_tasks(db, session.principal.id, board_id=board_obj.id)
    incomplete, completed = partition_by_completion(sort_tasks(tasks))
    return TaskListView(
        incomplete=[TaskResponse.model_validate(item) for item in incomplete],
        completed=[TaskResponse.model_validate(item) for item in completed],
    )
