"""GitHub bridge schemas."""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from taskboard.schemas.auth import TokenResponse


class AuthorizationResponse(BaseModel):
    """Where to send the user to authorize the app on GitHub."""

    url: str
    state: str


class LinkStatusResponse(BaseModel):
    """Linking state of the current user."""

    status: str
    github_login: Optional[str] = None


class GitHubAuthResult(BaseModel):
    """Outcome of the OAuth callback."""

    status: str
    linked: bool = False
    is_new_user: bool = False
    github_login: Optional[str] = None
    token: Optional[TokenResponse] = None


class RepositorySummary(BaseModel):
    """Repository as listed for the user."""

    id: int
    name: str
    full_name: str
    owner: str
    private: bool = False
    description: Optional[str] = None


class IssueSummary(BaseModel):
    """Issue of a repository."""

    id: int
    number: int
    title: str
    state: str
    body: Optional[str] = None
    html_url: Optional[str] = None


class IssueCreate(BaseModel):
    """New issue payload."""

    title: str
    body: str = ""


class ImportResult(BaseModel):
    """Counts of an issue import."""

    imported: int = 0
    skipped: int = 0
    failed: int = 0
    task_ids: List[UUID] = Field(default_factory=list)
