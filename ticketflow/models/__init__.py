"""Core domain models for ticketflow.

Key Models:
    - Issue: Tracker issue
    - CreateIssue / GetIssue: Command input for the start pipeline
    - Commit: Commit read from git log
    - IssueReference: ``Fixes #KEY`` mention in a commit message
    - BranchInfo: Commits and issue references of a branch
    - LocalChanges: BranchInfo paired with resolved issues
    - PullRequest / Release: Records created on the code host

Example:
    >>> from ticketflow.models import Issue, IssueStatus, IssueType
    >>> issue = Issue(key="ABC-1", title="Add X", type=IssueType.FEATURE, status=IssueStatus.OPEN)
"""

from ticketflow.enums import CommitCategory, IssueStatus, IssueType
from ticketflow.models.domain import (
    BranchInfo,
    Commit,
    CreateIssue,
    GetIssue,
    Issue,
    IssueReference,
    LocalChanges,
    PullRequest,
    Release,
)

__all__ = [
    "BranchInfo",
    "Commit",
    "CommitCategory",
    "CreateIssue",
    "GetIssue",
    "Issue",
    "IssueReference",
    "IssueStatus",
    "IssueType",
    "LocalChanges",
    "PullRequest",
    "Release",
]
