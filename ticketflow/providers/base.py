"""
Abstract base classes for providers.

This module defines the interfaces commands depend on: an issue tracker
(Jira) and a code host (GitHub). Commands only see these interfaces, which
keeps them testable with AsyncMock stand-ins.
"""

from abc import ABC, abstractmethod

from ticketflow.enums import IssueStatus
from ticketflow.models.domain import CreateIssue, Issue, PullRequest, Release


class IssueTracker(ABC):
    """Abstract base class for issue tracker implementations.

    Implementations map tracker-specific issue types and workflow status
    names onto IssueType and IssueStatus.
    """

    @abstractmethod
    async def get_issue(self, key: str) -> Issue:
        """Get a single issue by key.

        Raises:
            IssueNotFoundError: If the tracker has no issue with this key.
            TrackerError: If the request fails for any other reason.
        """
        pass

    @abstractmethod
    async def create_issue_for_current_user(self, request: CreateIssue) -> Issue:
        """Create an issue assigned to the authenticated user.

        Returns:
            The created issue as stored by the tracker.
        """
        pass

    @abstractmethod
    async def set_issue_status(self, status: IssueStatus, key: str) -> Issue:
        """Transition an issue to ``status``.

        A no-op when the issue is already in that status.

        Returns:
            The issue after the transition.
        """
        pass

    @abstractmethod
    def is_valid_issue_name(self, key: str) -> bool:
        """Check a key against the configured key pattern.

        Pure format check; never contacts the tracker.
        """
        pass

    @abstractmethod
    async def add_comment(self, key: str, body: str) -> None:
        """Add a comment to an issue."""
        pass

    @abstractmethod
    async def release_issues(self, name: str, issues: list[Issue]) -> None:
        """Record a release: create the version and mark issues released."""
        pass

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""


class CodeHost(ABC):
    """Abstract base class for code host implementations."""

    @abstractmethod
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
        """Open a pull request from ``head`` into ``base``.

        Raises:
            CodeHostError: If the code host rejects the request.
        """
        pass

    @abstractmethod
    async def create_release(self, name: str, tag: str, notes: str, target: str) -> Release:
        """Create a tag at ``target`` and a release for it.

        Raises:
            CodeHostError: If the code host rejects the request.
        """
        pass

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
