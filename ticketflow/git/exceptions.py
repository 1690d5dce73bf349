"""Git adapter exceptions.

This module defines the typed error taxonomy of the VCS adapter. Every
exception carries a GitErrorType code so callers can branch on the kind of
failure without matching on classes, plus an optional hint for resolution
that is appended to the rendered message.

Example:
    >>> from ticketflow.git.exceptions import NotGitRepositoryError
    >>> raise NotGitRepositoryError("/tmp/not-a-repo")
    Traceback (most recent call last):
        ...
    NotGitRepositoryError: Not a Git repository: /tmp/not-a-repo

    Hint: Run 'git init' or navigate to a Git repository directory.
"""

from enum import Enum

from ticketflow.exceptions import GitOperationError


class GitErrorType(str, Enum):
    """Kinds of failures reported by the VCS adapter."""

    NOT_A_GIT_REPO = "NOT_A_GIT_REPO"
    BRANCH_ALREADY_EXISTS = "BRANCH_ALREADY_EXISTS"
    NO_REMOTE = "NO_REMOTE"
    GIT_COMMAND_FAILED = "GIT_COMMAND_FAILED"


class GitError(GitOperationError):
    """Base exception for VCS adapter errors.

    Attributes:
        code: Kind of failure
        message: Error message
        hint: Optional hint for resolution
    """

    code = GitErrorType.GIT_COMMAND_FAILED

    def __init__(self, message: str, hint: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            hint: Optional hint for resolution
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        """Format error message with hint.

        Returns:
            Formatted error message with optional hint
        """
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class NotGitRepositoryError(GitError):
    """Raised when the working directory is not inside a Git repository.

    Attributes:
        path: Path that is not a Git repository
    """

    code = GitErrorType.NOT_A_GIT_REPO

    def __init__(self, path: str) -> None:
        super().__init__(
            message=f"Not a Git repository: {path}",
            hint="Run 'git init' or navigate to a Git repository directory.",
        )
        self.path = path


class BranchAlreadyExistsError(GitError):
    """Raised when creating a branch whose name is taken.

    Attributes:
        branch: The requested branch name
    """

    code = GitErrorType.BRANCH_ALREADY_EXISTS

    def __init__(self, branch: str) -> None:
        super().__init__(
            message=f"A branch named {branch} already exists",
            hint=f"Switch to it with: git checkout {branch}",
        )
        self.branch = branch


class NoRemotesError(GitError):
    """Raised when the repository has no remotes configured."""

    code = GitErrorType.NO_REMOTE

    def __init__(self) -> None:
        super().__init__(
            message="The repository does not have a remote",
            hint="Add a remote with: git remote add origin <url>",
        )


class GitCommandFailedError(GitError):
    """Raised when a git command exits with a non-zero status.

    Attributes:
        command: The git arguments that were run
        stderr: Standard error captured from git
        returncode: Exit status of git
    """

    code = GitErrorType.GIT_COMMAND_FAILED

    def __init__(self, command: list[str], stderr: str, returncode: int) -> None:
        self.command = command
        self.stderr = stderr.strip()
        self.returncode = returncode
        super().__init__(f"git {' '.join(command)} failed: {self.stderr or f'exit status {returncode}'}")


class InvalidGitUrlError(GitError):
    """Raised when a remote URL format is not recognized.

    Attributes:
        url: The invalid URL
    """

    def __init__(self, url: str, reason: str | None = None) -> None:
        msg = f"Invalid Git URL format: {url}"
        if reason:
            msg += f" ({reason})"

        super().__init__(
            message=msg,
            hint=("Expected formats:\n" "  - git@github.com:owner/repo.git\n" "  - https://github.com/owner/repo.git"),
        )
        self.url = url
