"""
Command pipeline shared by all ticketflow commands.

A command runs its validation gates concurrently, then its own steps in
order. Every failure ends the command: nothing is retried and no step
after the failing one runs.

Stages:
    VALIDATING -> (command specific stages) -> DONE -> TERMINAL

``stage`` always holds the stage the command is in; each transition is
logged as ``stage_entered``.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import Generic, TypeVar

import structlog

from ticketflow.engine.concurrency import Check, gather_ordered, run_validations
from ticketflow.exceptions import IssueNotFoundError
from ticketflow.git.exceptions import GitError, NotGitRepositoryError
from ticketflow.git.repository import Git
from ticketflow.models.domain import BranchInfo, Issue, LocalChanges
from ticketflow.providers.base import IssueTracker
from ticketflow.utils.messenger import Emoji, Messenger

log = structlog.get_logger(__name__)

T = TypeVar("T")


class Stage(str, Enum):
    """Stages a command moves through."""

    VALIDATING = "validating"
    RESOLVING_ISSUE = "resolving_issue"
    TRANSITIONING_STATUS = "transitioning_status"
    CREATING_BRANCH = "creating_branch"
    PUSHING = "pushing"
    COLLECTING_CHANGES = "collecting_changes"
    PUBLISHING = "publishing"
    DONE = "done"
    TERMINAL = "terminal"

    def __str__(self) -> str:
        return self.value


class Command(ABC, Generic[T]):
    """Base class every ticketflow command extends.

    Subclasses implement ``run_command`` and may extend ``validations``.

    Attributes:
        git: VCS adapter
        tracker: Issue tracker client
        messenger: Progress output
        stage: Current pipeline stage
    """

    def __init__(self, git: Git, tracker: IssueTracker, messenger: Messenger) -> None:
        self.git = git
        self.tracker = tracker
        self.messenger = messenger
        self.stage: Stage | None = None

    @property
    def base_branch(self) -> str:
        return self.git.config.base_branch

    def validations(self) -> list[Check]:
        """Gates that must all pass before the command does anything."""
        return [
            (self.is_git_repo, "ticketflow needs to run inside a git repository"),
            (
                self.base_branch_exists,
                f"Couldn't find any branch that matched {self.base_branch} to use as base branch",
            ),
        ]

    async def is_git_repo(self) -> bool:
        try:
            self.git.get_root_dir()
        except NotGitRepositoryError:
            return False
        return True

    async def base_branch_exists(self) -> bool:
        try:
            return await self.git.does_branch_exist(self.base_branch)
        except GitError:
            return False

    async def validate(self) -> None:
        """Run every gate concurrently; the first failure aborts.

        Raises:
            ValidationFailedError: With the message of the failed gate.
        """
        await run_validations(self.validations())

    async def run(self) -> T:
        """Validate, then run the command."""
        try:
            self._enter(Stage.VALIDATING)
            await self.validate()
            result = await self.run_command()
            self._enter(Stage.DONE)
            return result
        finally:
            self._enter(Stage.TERMINAL)

    @abstractmethod
    async def run_command(self) -> T:
        """The command's own steps, run after validation passed."""

    async def get_local_changes(
        self,
        branch_info: BranchInfo,
        extra_keys: Sequence[str] = (),
        use_tracker: bool = True,
    ) -> LocalChanges:
        """Resolve the issues referenced by a branch.

        Keys from the commits come first, followed by ``extra_keys`` not
        already referenced. Keys that do not match the tracker's key format
        are dropped without a lookup, and keys the tracker does not know
        are dropped too. Lookups run concurrently; the result keeps the
        key order.
        """
        if not use_tracker:
            return LocalChanges(branch_info=branch_info, issues=[])

        keys = list(branch_info.issue_keys)
        keys += [key for key in dict.fromkeys(extra_keys) if key not in keys]
        if keys:
            self.messenger.emit(f"Getting information for {', '.join(keys)}", Emoji.BUG)

        valid_keys = [key for key in keys if self.tracker.is_valid_issue_name(key)]
        if len(valid_keys) != len(keys):
            log.debug("invalid_issue_keys_dropped", keys=[key for key in keys if key not in valid_keys])

        resolved = await gather_ordered([self._get_issue_or_none(key) for key in valid_keys])
        return LocalChanges(branch_info=branch_info, issues=[issue for issue in resolved if issue is not None])

    async def _get_issue_or_none(self, key: str) -> Issue | None:
        try:
            return await self.tracker.get_issue(key)
        except IssueNotFoundError:
            log.info("issue_not_found_skipped", key=key)
            return None

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        log.debug("stage_entered", command=type(self).__name__, stage=str(stage))
