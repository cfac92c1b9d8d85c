"""GitHub bridge API endpoints."""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskboard.database import get_db
from taskboard.dependencies import get_current_user, get_locale, get_optional_session
from taskboard.core.exceptions import ValidationError
from taskboard.core.notices import notice_on_failure
from taskboard.core.session import Session
from taskboard.localization.helpers import get_translation
from taskboard.models.user import User
from taskboard.services.github_service import github_service
from taskboard.schemas.github import (
    AuthorizationResponse,
    GitHubAuthResult,
    ImportResult,
    IssueCreate,
    IssueSummary,
    LinkStatusResponse,
    RepositorySummary,
)

router = APIRouter()


@router.get("/authorize", response_model=AuthorizationResponse)
async def authorize(session: Optional[Session] = Depends(get_optional_session)):
    """Start GitHub sign-in, or linking when called with a bearer token."""
    return github_service.begin_auth(session)


@router.get("/callback", response_model=GitHubAuthResult)
async def callback(
    state: str,
    code: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Finish the OAuth flow started by ``/authorize``."""
    if error or not code:
        raise ValidationError(get_translation("errors.tracker_token_exchange_failed", locale))
    return await github_service.complete_auth(db, code, state, locale=locale)


@router.get("/status", response_model=LinkStatusResponse)
async def link_status(current_user: User = Depends(get_current_user)):
    return github_service.link_status(current_user)


@router.delete("/link", response_model=LinkStatusResponse)
async def unlink(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Forget the stored GitHub token; imported tasks are kept."""
    return await github_service.unlink(db, current_user)


@router.get("/repos", response_model=List[RepositorySummary])
async def list_repositories(
    current_user: User = Depends(get_current_user),
    locale: str = Depends(get_locale),
):
    return await github_service.list_repositories(current_user, locale=locale)


@router.get("/repos/{owner}/{repo}/issues", response_model=List[IssueSummary])
async def list_issues(
    owner: str,
    repo: str,
    state: str = Query("open", pattern="^(open|closed|all)$"),
    current_user: User = Depends(get_current_user),
    locale: str = Depends(get_locale),
):
    return await github_service.list_issues(current_user, owner, repo, state, locale=locale)


@router.post("/repos/{owner}/{repo}/issues", response_model=IssueSummary, status_code=status.HTTP_201_CREATED)
async def create_issue(
    owner: str,
    repo: str,
    payload: IssueCreate,
    current_user: User = Depends(get_current_user),
    locale: str = Depends(get_locale),
):
    return await github_service.create_issue(current_user, owner, repo, payload.title, payload.body, locale=locale)


@router.post("/repos/{owner}/{repo}/issues/{number}/close", response_model=IssueSummary)
async def close_issue(
    owner: str,
    repo: str,
    number: int,
    current_user: User = Depends(get_current_user),
    locale: str = Depends(get_locale),
):
    return await github_service.close_issue(current_user, owner, repo, number, locale=locale)


@router.post("/repos/{owner}/{repo}/import", response_model=ImportResult)
async def sync_repository(
    owner: str,
    repo: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Import every issue of the repository as a task, skipping ones already imported."""
    with notice_on_failure("notices.import_failed", locale):
        return await github_service.sync_repository(db, current_user, owner, repo, locale=locale)


@router.post("/import", response_model=ImportResult)
async def import_issues(
    issues: List[Dict[str, Any]],
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    locale: str = Depends(get_locale),
):
    """Import issues the client already fetched."""
    with notice_on_failure("notices.import_failed", locale):
        return await github_service.import_issues_as_tasks(db, issues, current_user.id)
