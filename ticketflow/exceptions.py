"""Custom exception hierarchy for ticketflow.

This module defines a structured exception hierarchy that enables precise
error handling and user-friendly error messages. Every command failure that
the CLI knows how to render is a TicketflowError; anything else is reported
as an unexpected error.

Exception Hierarchy:
    TicketflowError (base)
    ├── ConfigurationError
    │   └── ConfigIncompleteError
    ├── GitOperationError
    │   └── GitError (see ticketflow.git.exceptions)
    ├── ExternalServiceError
    │   ├── TrackerError
    │   │   └── IssueNotFoundError
    │   └── CodeHostError
    └── WorkflowError
        └── ValidationFailedError

Example Usage:
    >>> from ticketflow.exceptions import IssueNotFoundError
    >>> try:
    ...     issue = await tracker.get_issue("ABC-123")
    ... except IssueNotFoundError:
    ...     issue = None
"""

from collections.abc import Sequence


class TicketflowError(Exception):
    """Base exception for all ticketflow errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(TicketflowError):
    """Configuration-related errors.

    Raised when configuration files are invalid, unreadable, or contain
    values that fail validation.
    """

    pass


class ConfigIncompleteError(ConfigurationError):
    """Required configuration keys are missing and cannot be prompted for.

    The CLI normally asks for missing keys interactively. This error is
    raised instead when running without a terminal (e.g. in CI).

    Attributes:
        missing: Dotted paths of the missing keys
    """

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class GitOperationError(TicketflowError):
    """Git operation errors.

    Base class for everything raised by the VCS adapter. See
    ticketflow.git.exceptions for the typed taxonomy.
    """

    pass


class ExternalServiceError(TicketflowError):
    """External service communication errors.

    Raised when communication with Jira or GitHub fails.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response_text: Response body text (if applicable)
        """
        self.status_code = status_code
        self.response_text = response_text

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)


class TrackerError(ExternalServiceError):
    """Issue tracker request failed."""

    pass


class IssueNotFoundError(TrackerError):
    """The tracker answered 404 for an issue key.

    Callers resolving many keys at once treat this as "no issue" and drop
    the key; a direct fetch by id lets it propagate.

    Attributes:
        key: The issue key that was not found
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Issue {key} not found", status_code=404)


class CodeHostError(ExternalServiceError):
    """Code host (GitHub) request failed."""

    pass


class WorkflowError(TicketflowError):
    """Command pipeline errors."""

    pass


class ValidationFailedError(WorkflowError):
    """A precondition gate failed before the command ran.

    The message is the human-readable explanation attached to the gate.
    """

    pass
