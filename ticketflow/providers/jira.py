"""Jira issue tracker client using the REST v2 API."""

import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from ticketflow import __version__
from ticketflow.config.settings import JiraConfig
from ticketflow.enums import IssueStatus, IssueType
from ticketflow.exceptions import IssueNotFoundError, TrackerError
from ticketflow.models.domain import CreateIssue, Issue
from ticketflow.providers.base import IssueTracker
from ticketflow.utils.caching import ONE_DAY, KeyValueStore, cache_key, memoize

log = structlog.get_logger(__name__)

# Fallback when a Jira status name is not one of the configured names
_STATUS_CATEGORIES = {
    "new": IssueStatus.OPEN,
    "indeterminate": IssueStatus.IN_PROGRESS,
    "done": IssueStatus.RESOLVED,
}


class JiraTracker(IssueTracker):
    """Jira implementation using direct REST API calls.

    Authenticates with basic auth (login + API token). The current user and
    project metadata are memoized in the injected store for a day; every
    other call goes to Jira.
    """

    def __init__(
        self,
        config: JiraConfig,
        store: KeyValueStore | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Jira client.

        Args:
            config: Jira section of the settings
            store: Memoization store; None disables caching
            client: HTTP client to use instead of creating one (tests)
            timeout: Request timeout in seconds
        """
        self.config = config
        self.root = config.root.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=f"{self.root}/rest/api/2",
            auth=(config.user.login, config.user.token),
            headers={"Accept": "application/json", "User-Agent": f"ticketflow/{__version__}"},
            timeout=timeout,
            http2=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )
        self._key_pattern = re.compile(config.issue_pattern)

        prefix = f"{self.root}|{config.user.login}|"
        self.get_current_user: Callable[[], Awaitable[dict[str, Any]]] = memoize(
            lambda: cache_key(prefix, "JiraTracker", "get_current_user"),
            ONE_DAY,
            self._fetch_current_user,
            store,
        )
        self.get_project: Callable[[str], Awaitable[dict[str, Any]]] = memoize(
            lambda project_key: cache_key(prefix, "JiraTracker", "get_project", project_key),
            ONE_DAY,
            self._fetch_project,
            store,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def is_valid_issue_name(self, key: str) -> bool:
        """Full match of ``key`` against the configured key pattern."""
        return self._key_pattern.fullmatch(key) is not None

    async def get_issue(self, key: str) -> Issue:
        """Get single issue by key."""
        log.info("get_issue", key=key)
        return self._parse_issue(await self._get_issue_data(key))

    async def create_issue_for_current_user(self, request: CreateIssue) -> Issue:
        """Create an issue assigned to the authenticated user."""
        log.info("create_issue", project=request.project, type=str(request.type), title=request.title)

        user = await self.get_current_user()
        fields: dict[str, Any] = {
            "project": {"key": request.project},
            "summary": request.title,
            "issuetype": {"name": self._issue_type_name(request.type)},
            "labels": list(request.labels),
            "assignee": {"accountId": user["accountId"]} if user.get("accountId") else {"name": user.get("name")},
        }
        if request.description:
            fields["description"] = request.description

        response = await self._request("POST", "/issue", json={"fields": fields})
        self._raise_for_status(response, "Create issue")
        key = response.json()["key"]
        log.info("issue_created", key=key)
        return await self.get_issue(key)

    async def set_issue_status(self, status: IssueStatus, key: str) -> Issue:
        """Transition an issue to ``status``.

        The configured Jira status name is matched against the target of
        each available transition. Nothing is posted when the issue already
        has that status.

        Raises:
            TrackerError: If no available transition leads to the status.
        """
        target = self._status_name(status)
        data = await self._get_issue_data(key)
        current = (data["fields"].get("status") or {}).get("name", "")
        if current.lower() == target.lower():
            log.debug("issue_status_unchanged", key=key, status=current)
            return self._parse_issue(data)

        response = await self._request("GET", f"/issue/{key}/transitions")
        self._raise_for_status(response, f"List transitions of {key}")
        transitions = response.json().get("transitions", [])

        transition = next(
            (
                t
                for t in transitions
                if (t.get("to") or {}).get("name", "").lower() == target.lower() or t.get("name", "").lower() == target.lower()
            ),
            None,
        )
        if transition is None:
            available = ", ".join(t.get("name", "") for t in transitions) or "none"
            raise TrackerError(f"Issue {key} cannot be moved from {current} to {target} (available: {available})")

        response = await self._request(
            "POST",
            f"/issue/{key}/transitions",
            json={"transition": {"id": transition["id"]}},
        )
        self._raise_for_status(response, f"Transition {key}")
        log.info("issue_transitioned", key=key, from_status=current, to_status=target)
        return await self.get_issue(key)

    async def add_comment(self, key: str, body: str) -> None:
        """Add a comment to an issue."""
        log.info("add_comment", key=key)
        response = await self._request("POST", f"/issue/{key}/comment", json={"body": body})
        self._raise_for_status(response, f"Comment on {key}")

    async def release_issues(self, name: str, issues: list[Issue]) -> None:
        """Create a released version and attach it to each issue.

        One version named ``name`` is created per project the issues belong
        to; each issue gets it as fix version and is moved to released.
        """
        by_project: dict[str, list[Issue]] = {}
        for issue in issues:
            by_project.setdefault(issue.key.rsplit("-", 1)[0], []).append(issue)

        for project_key, project_issues in by_project.items():
            project = await self.get_project(project_key)
            response = await self._request(
                "POST",
                "/version",
                json={
                    "name": name,
                    "projectId": project["id"],
                    "released": True,
                    "releaseDate": datetime.now(UTC).date().isoformat(),
                },
            )
            self._raise_for_status(response, f"Create version {name} in {project_key}")
            log.info("version_created", project=project_key, version=name)

            for issue in project_issues:
                response = await self._request(
                    "PUT",
                    f"/issue/{issue.key}",
                    json={"update": {"fixVersions": [{"add": {"name": name}}]}},
                )
                self._raise_for_status(response, f"Set fix version of {issue.key}")
                await self.set_issue_status(IssueStatus.RELEASED, issue.key)

    async def _fetch_current_user(self) -> dict[str, Any]:
        response = await self._request("GET", "/myself")
        self._raise_for_status(response, "Get current user")
        data = response.json()
        return {
            "accountId": data.get("accountId"),
            "name": data.get("name"),
            "displayName": data.get("displayName"),
        }

    async def _fetch_project(self, project_key: str) -> dict[str, Any]:
        response = await self._request("GET", f"/project/{project_key}")
        self._raise_for_status(response, f"Get project {project_key}")
        data = response.json()
        return {"id": data["id"], "key": data["key"], "name": data.get("name", "")}

    async def _get_issue_data(self, key: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            f"/issue/{key}",
            params={"fields": "summary,description,issuetype,status"},
        )
        if response.status_code == 404:
            raise IssueNotFoundError(key)
        self._raise_for_status(response, f"Get issue {key}")
        return response.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            if method == "GET":
                return await self._client.get(path, **kwargs)
            if method == "PUT":
                return await self._client.put(path, **kwargs)
            return await self._client.post(path, **kwargs)
        except httpx.HTTPError as e:
            log.error("jira_request_failed", method=method, path=path, error=str(e))
            raise TrackerError(f"Cannot reach Jira at {self.root}: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        log.error("jira_error_response", action=action, status_code=response.status_code)
        raise TrackerError(f"{action} failed", status_code=response.status_code, response_text=response.text)

    def _issue_type_name(self, issue_type: IssueType) -> str:
        return getattr(self.config.issue_types, issue_type.value)

    def _status_name(self, status: IssueStatus) -> str:
        return getattr(self.config.status_names, status.value.replace("-", "_"))

    def _parse_issue(self, data: dict[str, Any]) -> Issue:
        """Convert Jira issue JSON to an Issue."""
        fields = data.get("fields", {})
        type_name = (fields.get("issuetype") or {}).get("name", "")
        issue_type = next(
            (t for t in IssueType if self._issue_type_name(t).lower() == type_name.lower()),
            IssueType.CHORE,
        )

        status_data = fields.get("status") or {}
        status_name = status_data.get("name", "")
        status = next(
            (s for s in IssueStatus if self._status_name(s).lower() == status_name.lower()),
            None,
        )
        if status is None:
            category = (status_data.get("statusCategory") or {}).get("key", "new")
            status = _STATUS_CATEGORIES.get(category, IssueStatus.OPEN)

        return Issue(
            key=data["key"],
            title=fields.get("summary") or "",
            type=issue_type,
            status=status,
            url=f"{self.root}/browse/{data['key']}",
            description=fields.get("description") or "",
        )
