"""
Domain models for ticketflow.

This module contains the data classes representing the entities commands
work with: tracker issues, commits read from git, branch information derived
from the commit history, and the records created on the code host. They are
the normalized internal representation, converted from Jira JSON, git log
output and PyGithub objects by the respective adapters.

Example:
    Creating an issue from tracker data::

        issue = Issue(
            key="ABC-123",
            title="Allow login with SSO",
            type=IssueType.FEATURE,
            status=IssueStatus.OPEN,
            url="https://example.atlassian.net/browse/ABC-123",
        )
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from ticketflow.enums import CommitCategory, IssueStatus, IssueType

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = 72) -> str:
    """Turn free text into a branch-safe slug.

    Args:
        text: Text to convert (usually an issue summary)
        max_length: Maximum slug length

    Returns:
        Lowercase words joined by underscores

    Example:
        >>> slugify("Fix: login fails for SSO users!")
        'fix_login_fails_for_sso_users'
    """
    slug = _SLUG_INVALID.sub("_", text.lower()).strip("_")
    return slug[:max_length].rstrip("_")


@dataclass(frozen=True)
class Issue:
    """Represents a tracker issue.

    Issues are created by the tracker and only change through status
    transitions, which return a fresh Issue.
    """

    key: str
    """Tracker-assigned identifier (e.g. ``ABC-123``)."""

    title: str
    type: IssueType
    status: IssueStatus

    url: str = ""
    """Browser URL of the issue."""

    description: str = ""

    @property
    def summary_slug(self) -> str:
        """Branch-safe slug of the issue title."""
        return slugify(self.title)


@dataclass(frozen=True)
class CreateIssue:
    """Data needed to create a new issue for the current user."""

    title: str
    type: IssueType
    project: str
    description: str = ""
    labels: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GetIssue:
    """Reference to an existing issue to fetch."""

    key: str


@dataclass(frozen=True)
class Commit:
    """A commit read from ``git log``."""

    hash: str
    author: str
    email: str
    date: datetime
    message: str

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        return self.message.strip().splitlines()[0] if self.message.strip() else ""

    @property
    def category(self) -> CommitCategory:
        """Changelog category inferred from the conventional prefix."""
        return CommitCategory.from_message(self.message)


@dataclass(frozen=True)
class IssueReference:
    """A ``Fixes #KEY`` mention found in a commit message."""

    key: str
    commit: str
    """Hash of the first commit that referenced the key."""

    text: str
    """The matched reference text, e.g. ``Fixes #ABC-123``."""


@dataclass(frozen=True)
class BranchInfo:
    """Commit history of a branch relative to its base.

    Derived from ``git log`` at query time and never persisted. Commits are
    ordered oldest first; issue references are de-duplicated and keep the
    order in which they were first seen.
    """

    name: str
    commits: list[Commit] = field(default_factory=list)
    issues: list[IssueReference] = field(default_factory=list)

    @property
    def issue_keys(self) -> list[str]:
        """Referenced issue keys in first-seen order."""
        return [reference.key for reference in self.issues]

    def category_of(self, key: str) -> CommitCategory:
        """Category of the commit that first referenced ``key``.

        Falls back to chores for keys that did not come from a commit
        (e.g. issues added explicitly on the command line).
        """
        by_hash = {commit.hash: commit for commit in self.commits}
        for reference in self.issues:
            if reference.key == key and reference.commit in by_hash:
                return by_hash[reference.commit].category
        return CommitCategory.CHORES


@dataclass(frozen=True)
class LocalChanges:
    """Branch information paired with the resolved tracker issues."""

    branch_info: BranchInfo
    issues: list[Issue] = field(default_factory=list)


@dataclass(frozen=True)
class PullRequest:
    """A pull request opened on the code host."""

    number: int
    title: str
    url: str
    head: str
    base: str
    draft: bool = False


@dataclass(frozen=True)
class Release:
    """A release (and tag) created on the code host.

    ``url`` is empty for dry runs and when the code host release was skipped.
    """

    name: str
    tag: str
    notes: str
    url: str = ""
    issues: list[Issue] = field(default_factory=list)
