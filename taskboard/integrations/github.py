"""GitHub integration module."""
from __future__ import annotations

import enum
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from taskboard.config import settings
from taskboard.core.exceptions import TrackerError, ValidationError
from taskboard.localization.helpers import get_translation
from taskboard.middleware.metrics import tracker_requests_total

logger = logging.getLogger(__name__)

ISSUE_STATES = ("open", "closed", "all")


class TrackerLinkStatus(str, enum.Enum):
    """Steps of linking a GitHub account."""

    UNAUTHENTICATED = "unauthenticated"
    AWAITING_CODE = "awaiting_code"
    EXCHANGING_TOKEN = "exchanging_token"
    AUTHENTICATED = "authenticated"


_TRANSITIONS = {
    TrackerLinkStatus.UNAUTHENTICATED: {TrackerLinkStatus.AWAITING_CODE},
    TrackerLinkStatus.AWAITING_CODE: {TrackerLinkStatus.EXCHANGING_TOKEN, TrackerLinkStatus.UNAUTHENTICATED},
    TrackerLinkStatus.EXCHANGING_TOKEN: {TrackerLinkStatus.AUTHENTICATED, TrackerLinkStatus.UNAUTHENTICATED},
    TrackerLinkStatus.AUTHENTICATED: {TrackerLinkStatus.UNAUTHENTICATED},
}


class TrackerLink:
    """State of one linking attempt; out-of-order steps raise ValueError."""

    def __init__(self, status: TrackerLinkStatus = TrackerLinkStatus.UNAUTHENTICATED):
        self.status = status

    def _move(self, target: TrackerLinkStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise ValueError(f"Cannot go from {self.status.value} to {target.value}")
        logger.debug("Tracker link %s -> %s", self.status.value, target.value)
        self.status = target

    def start(self) -> None:
        self._move(TrackerLinkStatus.AWAITING_CODE)

    def code_received(self) -> None:
        self._move(TrackerLinkStatus.EXCHANGING_TOKEN)

    def token_received(self) -> None:
        self._move(TrackerLinkStatus.AUTHENTICATED)

    def fail(self) -> None:
        if self.status != TrackerLinkStatus.UNAUTHENTICATED:
            self._move(TrackerLinkStatus.UNAUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self.status == TrackerLinkStatus.AUTHENTICATED


class GitHubIntegration:
    """GitHub OAuth and REST calls. One attempt per call, never retried."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.GITHUB_CLIENT_ID
        self.client_secret = settings.GITHUB_CLIENT_SECRET
        self.redirect_uri = settings.GITHUB_REDIRECT_URI
        self.scope = settings.GITHUB_SCOPE
        self.oauth_base_url = settings.GITHUB_OAUTH_BASE_URL.rstrip("/")
        self.api_base_url = settings.GITHUB_API_BASE_URL.rstrip("/")
        self.timeout = settings.GITHUB_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _require_configured(self) -> None:
        if not self.configured:
            raise TrackerError(get_translation("errors.tracker_not_configured"))

    @staticmethod
    def _build_headers(token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._build_headers(token),
                    params=params,
                    json=json,
                    data=data,
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            tracker_requests_total.labels(operation, "error").inc()
            logger.error(
                "GitHub %s failed with HTTP %s: %s",
                operation,
                exc.response.status_code,
                exc.response.text[:500],
            )
            raise TrackerError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            tracker_requests_total.labels(operation, "error").inc()
            logger.error("GitHub %s failed: %s", operation, exc, exc_info=True)
            raise TrackerError() from exc

        tracker_requests_total.labels(operation, "ok").inc()
        return payload

    def authorization_url(self, state: str) -> str:
        self._require_configured()
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "scope": self.scope,
                "state": state,
            }
        )
        return f"{self.oauth_base_url}/login/oauth/authorize?{query}"

    async def exchange_code(self, code: str) -> str:
        """Trade the authorization code for an access token."""
        self._require_configured()
        payload = await self._request(
            "exchange_code",
            "POST",
            f"{self.oauth_base_url}/login/oauth/access_token",
            json={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
        )
        if not isinstance(payload, dict):
            payload = {}
        access_token = payload.get("access_token")
        if not access_token:
            logger.error(
                "GitHub token exchange returned no token: %s",
                payload.get("error_description") or payload.get("error"),
            )
            raise TrackerError(get_translation("errors.tracker_token_exchange_failed"))
        return access_token

    async def get_user(self, token: str) -> Dict[str, Any]:
        payload = await self._request("get_user", "GET", f"{self.api_base_url}/user", token=token)
        if not isinstance(payload, dict) or "id" not in payload:
            raise TrackerError()
        return payload

    async def list_repositories(self, token: str) -> List[Dict[str, Any]]:
        payload = await self._request("list_repositories", "GET", f"{self.api_base_url}/user/repos", token=token)
        if not isinstance(payload, list):
            logger.error("GitHub repository list has unexpected shape: %r", type(payload).__name__)
            raise TrackerError()
        return payload

    async def list_issues(self, token: str, owner: str, repo: str, state: str = "open") -> List[Dict[str, Any]]:
        if state not in ISSUE_STATES:
            raise ValidationError(get_translation("errors.issue_state_invalid"))
        payload = await self._request(
            "list_issues",
            "GET",
            f"{self.api_base_url}/repos/{owner}/{repo}/issues",
            token=token,
            params={"state": state},
        )
        if not isinstance(payload, list):
            raise TrackerError()
        return payload

    async def create_issue(self, token: str, owner: str, repo: str, title: str, body: str = "") -> Dict[str, Any]:
        if not title or not title.strip():
            raise ValidationError(get_translation("errors.issue_title_required"))
        payload = await self._request(
            "create_issue",
            "POST",
            f"{self.api_base_url}/repos/{owner}/{repo}/issues",
            token=token,
            json={"title": title.strip(), "body": body},
        )
        if not isinstance(payload, dict) or "title" not in payload or "number" not in payload:
            raise TrackerError()
        return payload

    async def close_issue(self, token: str, owner: str, repo: str, number: int) -> Dict[str, Any]:
        payload = await self._request(
            "close_issue",
            "PATCH",
            f"{self.api_base_url}/repos/{owner}/{repo}/issues/{number}",
            token=token,
            json={"state": "closed"},
        )
        if not isinstance(payload, dict) or payload.get("state") != "closed":
            raise TrackerError()
        return payload

    @staticmethod
    def map_issue_to_task(issue: Dict[str, Any]) -> Dict[str, Any]:
        """Task fields of an issue: title, closed state and the issue id.

        An issue without a usable title raises ValueError.
        """
        if not isinstance(issue, dict):
            raise TypeError("GitHub issue must be an object")
        title = issue.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError(f"GitHub issue {issue.get('id')} has no title")
        return {
            "external_id": str(issue["id"]),
            "text": title.strip(),
            "description": issue.get("body"),
            "is_completed": issue.get("state") == "closed",
        }


github_integration = GitHubIntegration()
