"""GitHub account linking and issue import."""
from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.exceptions import (
    ConflictError,
    CredentialAlreadyInUseError,
    TrackerError,
    UnauthorizedError,
    ValidationError,
)
from taskboard.core.session import Session
from taskboard.crud.task import task as task_crud
from taskboard.crud.user import user as user_crud
from taskboard.integrations.github import GitHubIntegration, TrackerLink, TrackerLinkStatus, github_integration
from taskboard.localization.helpers import get_translation
from taskboard.models.task import Task
from taskboard.models.user import User
from taskboard.schemas.github import (
    AuthorizationResponse,
    GitHubAuthResult,
    ImportResult,
    IssueSummary,
    LinkStatusResponse,
    RepositorySummary,
)
from taskboard.schemas.user import UserCreate
from taskboard.services.auth_service import auth_service
from taskboard.services.session_service import SessionManager, session_manager
from taskboard.services.subscription_service import ChangeFeed, change_feed
from taskboard.utils.security import create_oauth_state_token, decode_token

logger = logging.getLogger(__name__)


def _repository_summary(repo: Dict[str, Any]) -> RepositorySummary:
    owner = repo.get("owner") or {}
    return RepositorySummary(
        id=repo["id"],
        name=repo["name"],
        full_name=repo.get("full_name") or repo["name"],
        owner=owner.get("login", "") if isinstance(owner, dict) else str(owner),
        private=bool(repo.get("private", False)),
        description=repo.get("description"),
    )


def _issue_summary(issue: Dict[str, Any]) -> IssueSummary:
    return IssueSummary(
        id=issue["id"],
        number=issue["number"],
        title=issue.get("title") or "",
        state=issue.get("state") or "open",
        body=issue.get("body"),
        html_url=issue.get("html_url"),
    )


class GitHubService:
    """Links GitHub identities to users and turns issues into tasks."""

    def __init__(self, integration: GitHubIntegration, sessions: SessionManager, feed: ChangeFeed):
        self.integration = integration
        self.sessions = sessions
        self.feed = feed

    @staticmethod
    def link_status(user: User) -> LinkStatusResponse:
        status = TrackerLinkStatus.AUTHENTICATED if user.github_token else TrackerLinkStatus.UNAUTHENTICATED
        return LinkStatusResponse(status=status.value, github_login=user.github_login)

    @staticmethod
    def _require_token(user: User, locale: str = "en") -> str:
        if not user.github_token:
            raise ValidationError(get_translation("errors.tracker_token_missing", locale))
        return user.github_token

    def begin_auth(self, session: Optional[Session] = None) -> AuthorizationResponse:
        """Issue a signed state and the URL that starts GitHub authorization.

        With a signed-in session the state carries its id, so the callback
        links GitHub to that user instead of signing someone in.
        """
        claims: Dict[str, Any] = {"nonce": uuid4().hex}
        if session is not None and session.is_signed_in:
            claims["sid"] = str(session.id)
        state = create_oauth_state_token(claims)
        return AuthorizationResponse(url=self.integration.authorization_url(state), state=state)

    async def complete_auth(self, db: AsyncSession, code: str, state: str, locale: str = "en") -> GitHubAuthResult:
        try:
            claims = decode_token(state)
        except ValueError:
            raise ValidationError(get_translation("errors.tracker_state_invalid", locale))
        if claims.get("type") != "oauth_state":
            raise ValidationError(get_translation("errors.tracker_state_invalid", locale))

        link = TrackerLink()
        link.start()
        link.code_received()
        try:
            access_token = await self.integration.exchange_code(code)
        except TrackerError:
            link.fail()
            raise
        link.token_received()

        current_user = None
        sid = claims.get("sid")
        if sid:
            session = await self.sessions.resolve(db, UUID(sid))
            if session is None:
                raise ValidationError(get_translation("errors.tracker_state_invalid", locale))
            current_user = await user_crud.get(db, session.principal.id)

        return await self.link_or_sign_in(db, access_token, current_user, locale=locale)

    async def link_or_sign_in(
        self,
        db: AsyncSession,
        access_token: str,
        current_user: Optional[User] = None,
        locale: str = "en",
    ) -> GitHubAuthResult:
        """Attach the GitHub identity to ``current_user``, or sign in with it."""
        identity = await self.integration.get_user(access_token)
        github_id = str(identity["id"])
        github_login = identity.get("login")
        linked_user = await user_crud.get_by_github_id(db, github_id=github_id)

        if current_user is not None:
            if linked_user is not None and linked_user.id != current_user.id:
                logger.warning("GitHub account %s is already linked to user %s", github_id, linked_user.id)
                raise CredentialAlreadyInUseError(locale=locale)
            await user_crud.update(
                db,
                db_obj=current_user,
                obj_in={"github_id": github_id, "github_login": github_login, "github_token": access_token},
            )
            logger.info("Linked GitHub account %s to user %s", github_login, current_user.id)
            return GitHubAuthResult(
                status=TrackerLinkStatus.AUTHENTICATED.value,
                linked=True,
                github_login=github_login,
            )

        if linked_user is not None and not linked_user.is_active:
            raise UnauthorizedError(locale=locale)
        is_new_user = linked_user is None
        if linked_user is None:
            linked_user = await self._register_from_identity(db, identity, locale)
        linked_user = await user_crud.update(
            db,
            db_obj=linked_user,
            obj_in={"github_id": github_id, "github_login": github_login, "github_token": access_token},
        )

        session = await self.sessions.open(db, linked_user)
        logger.info("Signed in user %s with GitHub (new user: %s)", linked_user.id, is_new_user)
        return GitHubAuthResult(
            status=TrackerLinkStatus.AUTHENTICATED.value,
            linked=True,
            is_new_user=is_new_user,
            github_login=github_login,
            token=auth_service.create_tokens(linked_user, session.id),
        )

    @staticmethod
    async def _register_from_identity(db: AsyncSession, identity: Dict[str, Any], locale: str) -> User:
        email = identity.get("email") or f"{identity['id']}+{identity.get('login', 'github')}@users.noreply.github.com"
        if await user_crud.get_by_email(db, email=email.lower()):
            # Existing password accounts are linked explicitly, never by email match
            raise ConflictError(get_translation("errors.email_in_use", locale))
        payload = UserCreate(
            email=email,
            password=secrets.token_urlsafe(32),
            display_name=identity.get("name") or identity.get("login"),
        )
        return await auth_service.register_user(db, payload, locale=locale)

    async def unlink(self, db: AsyncSession, user: User) -> LinkStatusResponse:
        user = await user_crud.update(db, db_obj=user, obj_in={"github_token": None})
        return self.link_status(user)

    async def list_repositories(self, user: User, locale: str = "en") -> List[RepositorySummary]:
        token = self._require_token(user, locale)
        return [_repository_summary(repo) for repo in await self.integration.list_repositories(token)]

    async def list_issues(
        self,
        user: User,
        owner: str,
        repo: str,
        state: str = "open",
        locale: str = "en",
    ) -> List[IssueSummary]:
        token = self._require_token(user, locale)
        return [_issue_summary(issue) for issue in await self.integration.list_issues(token, owner, repo, state)]

    async def create_issue(
        self,
        user: User,
        owner: str,
        repo: str,
        title: str,
        body: str = "",
        locale: str = "en",
    ) -> IssueSummary:
        token = self._require_token(user, locale)
        return _issue_summary(await self.integration.create_issue(token, owner, repo, title, body))

    async def close_issue(self, user: User, owner: str, repo: str, number: int, locale: str = "en") -> IssueSummary:
        token = self._require_token(user, locale)
        return _issue_summary(await self.integration.close_issue(token, owner, repo, number))

    async def import_issues_as_tasks(
        self,
        db: AsyncSession,
        issues: Iterable[Dict[str, Any]],
        owner_id: UUID,
    ) -> ImportResult:
        """Insert one unfiled task per issue not imported before.

        An issue that is already present, or that a concurrent import
        inserted first, counts as skipped.
        """
        result = ImportResult()
        for issue in issues:
            try:
                fields = self.integration.map_issue_to_task(issue)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed GitHub issue %r", issue)
                result.failed += 1
                continue

            existing = await task_crud.get_by_external_id(db, owner_id=owner_id, external_id=fields["external_id"])
            if existing is not None:
                result.skipped += 1
                continue

            task_obj = Task(owner_id=owner_id, board_id=None, **fields)
            db.add(task_obj)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                result.skipped += 1
                continue
            except SQLAlchemyError:
                await db.rollback()
                logger.error("Failed to import GitHub issue %s", fields["external_id"], exc_info=True)
                result.failed += 1
                continue

            result.imported += 1
            result.task_ids.append(task_obj.id)

        logger.info(
            "GitHub import for user %s: %d imported, %d skipped, %d failed",
            owner_id,
            result.imported,
            result.skipped,
            result.failed,
        )
        if result.imported:
            await self.feed.publish("tasks", owner_id)
        return result

    async def sync_repository(self, db: AsyncSession, user: User, owner: str, repo: str, locale: str = "en") -> ImportResult:
        """Import every issue of the repository, open and closed."""
        token = self._require_token(user, locale)
        issues = await self.integration.list_issues(token, owner, repo, state="all")
        return await self.import_issues_as_tasks(db, issues, user.id)


github_service = GitHubService(github_integration, session_manager, change_feed)
