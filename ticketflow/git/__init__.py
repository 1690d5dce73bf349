"""Local git access.

The Git class wraps the git executable for branch creation, stashing,
commit history and pushes. Remote URLs are parsed into repository
coordinates for the code host client.

Error Handling:
    Every failure is a GitError carrying a GitErrorType code and, where
    useful, a hint.

    >>> from ticketflow.git import BranchAlreadyExistsError
    >>> try:
    ...     await git_adapter.create_branch_and_stash_changes("f/abc-1_x")
    ... except BranchAlreadyExistsError as e:
    ...     print(e)
    A branch named f/abc-1_x already exists

    Hint: Switch to it with: git checkout f/abc-1_x
"""

from ticketflow.git.exceptions import (
    BranchAlreadyExistsError,
    GitCommandFailedError,
    GitError,
    GitErrorType,
    InvalidGitUrlError,
    NoRemotesError,
    NotGitRepositoryError,
)
from ticketflow.git.models import GitRemote, RepositoryInfo
from ticketflow.git.parser import GitUrlParser
from ticketflow.git.repository import Git

__all__ = [
    # Main API
    "Git",
    # Parser
    "GitUrlParser",
    # Models
    "GitRemote",
    "RepositoryInfo",
    # Exceptions
    "GitError",
    "GitErrorType",
    "NotGitRepositoryError",
    "BranchAlreadyExistsError",
    "NoRemotesError",
    "GitCommandFailedError",
    "InvalidGitUrlError",
]
