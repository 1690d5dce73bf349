"""GitHub code host implementation using PyGithub."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog
from github import Auth, Github, GithubException  # type: ignore[import-not-found]
from github.GitRelease import GitRelease as GHRelease  # type: ignore[import-not-found]
from github.PullRequest import PullRequest as GHPullRequest  # type: ignore[import-not-found]
from github.Repository import Repository as GHRepository  # type: ignore[import-not-found]

from ticketflow.exceptions import CodeHostError
from ticketflow.models.domain import PullRequest, Release
from ticketflow.providers.base import CodeHost

log = structlog.get_logger(__name__)

T = TypeVar("T")


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous function in a thread pool.

    This prevents blocking the event loop when calling synchronous
    PyGithub methods.
    """
    return await asyncio.to_thread(func)


def _error_message(e: GithubException) -> str:
    if isinstance(e.data, dict) and e.data.get("message"):
        return str(e.data["message"])
    return str(e)


class GitHubHost(CodeHost):
    """GitHub implementation using the PyGithub library.

    The repository handle is fetched lazily on first use.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = "https://api.github.com",
    ):
        """Initialize GitHub client.

        Args:
            token: GitHub personal access token
            owner: Repository owner (user or organization)
            repo: Repository name
            base_url: GitHub API base URL (for GitHub Enterprise)
        """
        self.token = token.strip() if token else token
        self.owner = owner
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        self._client: Github | None = None
        self._repo: GHRepository | None = None

    async def _get_repo(self) -> GHRepository:
        if self._repo is None:

            def _connect() -> tuple[Github, GHRepository]:
                client = Github(auth=Auth.Token(self.token), base_url=self.base_url)
                return client, client.get_repo(f"{self.owner}/{self.repo}")

            try:
                self._client, self._repo = await _run_sync(_connect)
            except GithubException as e:
                raise CodeHostError(
                    f"Cannot access repository {self.owner}/{self.repo}: {_error_message(e)}",
                    status_code=e.status,
                ) from e
            log.info("github_connected", base_url=self.base_url, owner=self.owner, repo=self.repo)
        return self._repo

    async def close(self) -> None:
        """Close GitHub client."""
        if self._client:
            await _run_sync(self._client.close)
            self._client = None
            self._repo = None

    async def create_pull_request(
        self,
        title: str,
        body: str,
        head: str,
        base: str,
        draft: bool = False,
        labels: list[str] | None = None,
        reviewers: list[str] | None = None,
    ) -> PullRequest:
        """Create a pull request, then apply labels and request reviewers."""
        log.info("create_pull_request", title=title, head=head, base=base, draft=draft)
        gh_repo = await self._get_repo()

        def _create_pr() -> GHPullRequest:
            gh_pr = gh_repo.create_pull(title=title, body=body, head=head, base=base, draft=draft)
            if labels:
                gh_pr.add_to_labels(*labels)
            if reviewers:
                gh_pr.create_review_request(reviewers=reviewers)
            return gh_pr

        try:
            gh_pr = await _run_sync(_create_pr)
        except GithubException as e:
            log.error("github_create_pr_failed", error=str(e))
            raise CodeHostError(f"Cannot create pull request: {_error_message(e)}", status_code=e.status) from e

        return PullRequest(
            number=gh_pr.number,
            title=gh_pr.title,
            url=gh_pr.html_url,
            head=head,
            base=base,
            draft=draft,
        )

    async def create_release(self, name: str, tag: str, notes: str, target: str) -> Release:
        """Create a tag and a release pointing at ``target``."""
        log.info("create_release", name=name, tag=tag, target=target)
        gh_repo = await self._get_repo()

        def _create_release() -> GHRelease:
            return gh_repo.create_git_release(
                tag=tag,
                name=name,
                message=notes,
                target_commitish=target,
            )

        try:
            gh_release = await _run_sync(_create_release)
        except GithubException as e:
            log.error("github_create_release_failed", tag=tag, error=str(e))
            raise CodeHostError(f"Cannot create release {tag}: {_error_message(e)}", status_code=e.status) from e

        return Release(name=name, tag=tag, notes=notes, url=gh_release.html_url)
