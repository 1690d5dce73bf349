"""The ``start`` command: begin work on an issue."""

import structlog

from ticketflow.engine.concurrency import Check
from ticketflow.engine.pipeline import Command, Stage
from ticketflow.enums import IssueStatus
from ticketflow.git.repository import Git
from ticketflow.models.domain import CreateIssue, GetIssue, Issue
from ticketflow.providers.base import IssueTracker
from ticketflow.utils.messenger import Emoji, Messenger

log = structlog.get_logger(__name__)


class StartCommand(Command[Issue | None]):
    """Fetch or create an issue, mark it in progress and branch for it.

    Result is None when a branch was created, otherwise the issue.
    """

    def __init__(
        self,
        git: Git,
        tracker: IssueTracker,
        messenger: Messenger,
        request: GetIssue | CreateIssue,
        create_branch: bool = True,
    ) -> None:
        super().__init__(git, tracker, messenger)
        self.request = request
        self.create_branch = create_branch

    def validations(self) -> list[Check]:
        checks = super().validations()
        if isinstance(self.request, GetIssue):
            key = self.request.key

            async def is_valid_key() -> bool:
                return self.tracker.is_valid_issue_name(key)

            checks.append((is_valid_key, f"{key} is not a valid issue key"))
        return checks

    async def run_command(self) -> Issue | None:
        self._enter(Stage.RESOLVING_ISSUE)
        issue = await self._get_or_create_issue()

        self._enter(Stage.TRANSITIONING_STATUS)
        self.messenger.emit(f"Setting {issue.key} in progress", Emoji.BOOKMARK)
        issue = await self.tracker.set_issue_status(IssueStatus.IN_PROGRESS, issue.key)

        if not self.create_branch:
            return issue

        self._enter(Stage.CREATING_BRANCH)
        name = self.git.get_branch_name_for_issue(issue)
        self.messenger.emit(f"Creating branch {name}", Emoji.TADA)
        await self.git.create_branch_and_stash_changes(name)
        return None

    async def _get_or_create_issue(self) -> Issue:
        if isinstance(self.request, GetIssue):
            self.messenger.emit(f"Getting {self.request.key} from Jira", Emoji.BUG)
            return await self.tracker.get_issue(self.request.key)

        self.messenger.emit("Creating issue in Jira", Emoji.BUG)
        issue = await self.tracker.create_issue_for_current_user(self.request)
        log.info("issue_created_for_start", key=issue.key)
        return issue
