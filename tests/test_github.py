"""Tests for the GitHub bridge."""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy import select

from taskboard.core.exceptions import (
    CredentialAlreadyInUseError,
    TrackerError,
    ValidationError,
)
from taskboard.integrations.github import GitHubIntegration, TrackerLink, TrackerLinkStatus
from taskboard.models.task import Task
from taskboard.models.user import User
from taskboard.services.github_service import GitHubService
from taskboard.services.session_service import SessionManager
from taskboard.utils.security import decode_token

ISSUES = [
    {"id": 101, "number": 1, "title": "Fix login", "state": "open", "body": "Steps..."},
    {"id": 102, "number": 2, "title": "Old bug", "state": "closed", "body": None},
]


class FakeGitHub:
    """Answers the GitHub endpoints the bridge calls and records every request."""

    def __init__(self, token_payload=None, identity=None):
        self.requests = []
        self.token_payload = token_payload or {"access_token": "gho_test", "token_type": "bearer"}
        self.identity = identity or {"id": 555, "login": "octocat", "name": "Octo Cat"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/login/oauth/access_token":
            return httpx.Response(200, json=self.token_payload)
        if path == "/user":
            return httpx.Response(200, json=self.identity)
        if path == "/user/repos":
            return httpx.Response(
                200,
                json=[{"id": 1, "name": "app", "full_name": "octocat/app", "owner": {"login": "octocat"}}],
            )
        if path == "/repos/octocat/app/issues" and request.method == "GET":
            return httpx.Response(200, json=ISSUES)
        if path == "/repos/octocat/app/issues" and request.method == "POST":
            body = json.loads(request.content)
            return httpx.Response(201, json={"id": 103, "number": 3, "title": body["title"], "state": "open"})
        if path == "/repos/octocat/app/issues/1" and request.method == "PATCH":
            return httpx.Response(200, json={"id": 101, "number": 1, "title": "Fix login", "state": "closed"})
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def integration(fake_github):
    return GitHubIntegration(transport=httpx.MockTransport(fake_github))


@pytest.fixture
def service(integration, feed):
    return GitHubService(integration, SessionManager(), feed)


def test_link_state_machine_happy_path():
    link = TrackerLink()
    link.start()
    link.code_received()
    link.token_received()

    assert link.is_authenticated


def test_link_state_machine_rejects_skipped_steps():
    link = TrackerLink()
    with pytest.raises(ValueError):
        link.token_received()

    link.start()
    link.fail()
    assert link.status == TrackerLinkStatus.UNAUTHENTICATED


def test_authorization_url(integration):
    url = urlparse(integration.authorization_url("signed-state"))
    query = parse_qs(url.query)

    assert url.netloc == "github.com"
    assert url.path == "/login/oauth/authorize"
    assert query["client_id"] == ["test-client-id"]
    assert query["redirect_uri"] == ["todolistmobileapp://redirect"]
    assert query["scope"] == ["repo"]
    assert query["state"] == ["signed-state"]


@pytest.mark.asyncio
async def test_exchange_code_posts_credentials(integration, fake_github):
    token = await integration.exchange_code("the-code")

    request = fake_github.requests[-1]
    body = json.loads(request.content)
    assert token == "gho_test"
    assert request.method == "POST"
    assert request.headers["accept"] == "application/json"
    assert body["client_secret"] == "test-client-secret"
    assert body["code"] == "the-code"


@pytest.mark.asyncio
async def test_exchange_code_without_token_fails():
    fake = FakeGitHub(token_payload={"error": "bad_verification_code"})
    integration = GitHubIntegration(transport=httpx.MockTransport(fake))

    with pytest.raises(TrackerError):
        await integration.exchange_code("expired")


@pytest.mark.asyncio
async def test_rest_calls_send_token_and_validate_shapes(integration, fake_github):
    repos = await integration.list_repositories("gho_test")
    issues = await integration.list_issues("gho_test", "octocat", "app", state="all")
    created = await integration.create_issue("gho_test", "octocat", "app", "New one")
    closed = await integration.close_issue("gho_test", "octocat", "app", 1)

    assert repos[0]["full_name"] == "octocat/app"
    assert [issue["id"] for issue in issues] == [101, 102]
    assert created["number"] == 3
    assert closed["state"] == "closed"
    assert all(r.headers["authorization"] == "token gho_test" for r in fake_github.requests)
    assert fake_github.requests[1].url.params["state"] == "all"


@pytest.mark.asyncio
async def test_http_errors_are_not_retried(integration, fake_github):
    with pytest.raises(TrackerError):
        await integration.list_issues("gho_test", "octocat", "missing")

    assert len(fake_github.requests) == 1


@pytest.mark.asyncio
async def test_invalid_issue_input_is_rejected_before_any_call(integration, fake_github):
    with pytest.raises(ValidationError):
        await integration.list_issues("gho_test", "octocat", "app", state="merged")
    with pytest.raises(ValidationError):
        await integration.create_issue("gho_test", "octocat", "app", "   ")

    assert fake_github.requests == []


def test_map_issue_to_task():
    mapped = GitHubIntegration.map_issue_to_task(ISSUES[1])

    assert mapped["external_id"] == "102"
    assert mapped["text"] == "Old bug"
    assert mapped["is_completed"] is True


@pytest.mark.asyncio
async def test_import_is_deduplicated(service, db_session, test_user):
    first = await service.import_issues_as_tasks(db_session, ISSUES, test_user.id)
    second = await service.import_issues_as_tasks(db_session, ISSUES, test_user.id)

    assert (first.imported, first.skipped) == (2, 0)
    assert (second.imported, second.skipped) == (0, 2)
    rows = (await db_session.execute(select(Task).where(Task.owner_id == test_user.id))).scalars().all()
    assert sorted(row.external_id for row in rows) == ["101", "102"]
    assert all(row.board_id is None for row in rows)
    assert {row.external_id: row.is_completed for row in rows} == {"101": False, "102": True}


@pytest.mark.asyncio
async def test_concurrent_duplicate_insert_counts_as_skip(service, db_session, test_user, monkeypatch):
    from taskboard.crud.task import task as task_crud

    await service.import_issues_as_tasks(db_session, ISSUES[:1], test_user.id)

    async def not_found(*args, **kwargs):
        return None

    # Another import won the race between the lookup and the insert
    monkeypatch.setattr(task_crud, "get_by_external_id", not_found)
    result = await service.import_issues_as_tasks(db_session, ISSUES[:1], test_user.id)

    assert (result.imported, result.skipped, result.failed) == (0, 1, 0)


@pytest.mark.asyncio
async def test_import_counts_malformed_issues(service, db_session, test_user):
    result = await service.import_issues_as_tasks(db_session, [{"title": "no id"}], test_user.id)

    assert result.failed == 1
    assert result.imported == 0


def test_map_issue_without_title_is_rejected():
    for title in (None, "", "   "):
        with pytest.raises(ValueError):
            GitHubIntegration.map_issue_to_task({"id": 7, "state": "open", "title": title})


@pytest.mark.asyncio
async def test_import_counts_untitled_issues_as_failed(service, db_session, test_user):
    issues = [{"id": 7, "state": "open", "title": ""}, {"id": 8, "state": "open"}, ISSUES[0]]

    result = await service.import_issues_as_tasks(db_session, issues, test_user.id)

    assert (result.imported, result.skipped, result.failed) == (1, 0, 2)
    rows = (await db_session.execute(select(Task).where(Task.owner_id == test_user.id))).scalars().all()
    assert [row.text for row in rows] == ["Fix login"]


@pytest.mark.asyncio
async def test_sync_repository_needs_token(service, db_session, test_user, fake_github):
    with pytest.raises(ValidationError):
        await service.sync_repository(db_session, test_user, "octocat", "app")
    assert fake_github.requests == []


@pytest.mark.asyncio
async def test_sync_repository_imports_all_states(service, db_session, test_user, fake_github):
    test_user.github_token = "gho_test"
    await db_session.commit()

    result = await service.sync_repository(db_session, test_user, "octocat", "app")

    assert result.imported == 2
    assert fake_github.requests[0].url.params["state"] == "all"


@pytest.mark.asyncio
async def test_link_to_signed_in_user(service, db_session, test_user):
    result = await service.link_or_sign_in(db_session, "gho_test", test_user)

    await db_session.refresh(test_user)
    assert result.linked is True
    assert result.token is None
    assert test_user.github_id == "555"
    assert test_user.github_login == "octocat"
    assert test_user.github_token == "gho_test"


@pytest.mark.asyncio
async def test_link_credential_in_use(service, db_session, test_user, other_user):
    other_user.github_id = "555"
    await db_session.commit()

    with pytest.raises(CredentialAlreadyInUseError) as exc_info:
        await service.link_or_sign_in(db_session, "gho_test", test_user)

    assert exc_info.value.status_code == 409
    assert "already linked" in exc_info.value.detail


@pytest.mark.asyncio
async def test_sign_in_registers_new_user(service, db_session):
    result = await service.link_or_sign_in(db_session, "gho_test", None)

    assert result.is_new_user is True
    assert result.token is not None
    claims = decode_token(result.token.access_token)
    user = (await db_session.execute(select(User).where(User.github_id == "555"))).scalar_one()
    assert claims["sub"] == str(user.id)
    assert claims["sid"]


@pytest.mark.asyncio
async def test_sign_in_existing_linked_user(service, db_session, test_user):
    test_user.github_id = "555"
    await db_session.commit()

    result = await service.link_or_sign_in(db_session, "gho_test", None)

    assert result.is_new_user is False
    assert decode_token(result.token.access_token)["sub"] == str(test_user.id)


@pytest.mark.asyncio
async def test_complete_auth_rejects_forged_state(service, db_session, fake_github):
    with pytest.raises(ValidationError):
        await service.complete_auth(db_session, "code", "not-a-token")
    assert fake_github.requests == []


@pytest.mark.asyncio
async def test_begin_and_complete_auth_links_current_session(service, db_session, test_user):
    session = await service.sessions.open(db_session, test_user)
    started = service.begin_auth(session)

    assert decode_token(started.state)["sid"] == str(session.id)

    result = await service.complete_auth(db_session, "code", started.state)

    assert result.linked is True
    assert result.token is None
    await db_session.refresh(test_user)
    assert test_user.github_login == "octocat"
