"""The ``review`` command: open a pull request for the current branch."""

from collections.abc import Callable, Sequence

import structlog

from ticketflow.engine.concurrency import Check, gather_ordered
from ticketflow.engine.pipeline import Command, Stage
from ticketflow.enums import IssueStatus
from ticketflow.git.repository import Git
from ticketflow.models.domain import Issue, LocalChanges, PullRequest
from ticketflow.providers.base import CodeHost, IssueTracker
from ticketflow.rendering.engine import PULL_REQUEST_TEMPLATE, TemplateEngine
from ticketflow.utils.messenger import Emoji, Messenger

log = structlog.get_logger(__name__)


def pull_request_title(changes: LocalChanges) -> str:
    """Title for a pull request.

    ``[KEY-1][KEY-2] <first issue title>`` when issues were resolved,
    otherwise the subject of the first commit, otherwise the branch name.
    """
    if changes.issues:
        keys = "".join(f"[{issue.key}]" for issue in changes.issues)
        return f"{keys} {changes.issues[0].title}"
    if changes.branch_info.commits:
        return changes.branch_info.commits[0].subject
    return changes.branch_info.name


class ReviewCommand(Command[PullRequest]):
    """Push the branch, open a pull request and move its issues to review.

    The code host is built by ``code_host_factory`` only once validation
    passed and is closed when the command ends.
    """

    def __init__(
        self,
        git: Git,
        tracker: IssueTracker,
        messenger: Messenger,
        code_host_factory: Callable[[], CodeHost],
        templates: TemplateEngine,
        draft: bool = False,
        labels: Sequence[str] = (),
        reviewers: Sequence[str] = (),
        extra_issues: Sequence[str] = (),
        use_tracker: bool = True,
    ) -> None:
        super().__init__(git, tracker, messenger)
        self.code_host_factory = code_host_factory
        self.templates = templates
        self.draft = draft
        self.labels = list(labels)
        self.reviewers = list(reviewers)
        self.extra_issues = list(extra_issues)
        self.use_tracker = use_tracker

    def validations(self) -> list[Check]:
        return [
            *super().validations(),
            (
                self.is_not_on_base_branch,
                f"You are on {self.base_branch}; create a branch before opening a pull request",
            ),
        ]

    async def is_not_on_base_branch(self) -> bool:
        return await self.git.get_current_branch() != self.base_branch

    async def run_command(self) -> PullRequest:
        code_host = self.code_host_factory()
        try:
            return await self._open_pull_request(code_host)
        finally:
            await code_host.close()

    async def _open_pull_request(self, code_host: CodeHost) -> PullRequest:
        self._enter(Stage.PUSHING)
        self.messenger.emit(f"Pushing branch to {self.git.config.remote}", Emoji.ROCKET)
        await self.git.push()

        self._enter(Stage.COLLECTING_CHANGES)
        branch_info = await self.git.get_branch_info()
        changes = await self.get_local_changes(branch_info, self.extra_issues, self.use_tracker)

        self._enter(Stage.PUBLISHING)
        body = self.templates.render(
            PULL_REQUEST_TEMPLATE,
            {"branch": branch_info.name, "issues": changes.issues, "commits": branch_info.commits},
        )
        self.messenger.emit("Creating pull request", Emoji.MEMO)
        pull_request = await code_host.create_pull_request(
            title=pull_request_title(changes),
            body=body,
            head=branch_info.name,
            base=self.base_branch,
            draft=self.draft,
            labels=self.labels,
            reviewers=self.reviewers,
        )
        self.messenger.emit(f"Pull request created: {pull_request.url}", Emoji.LINK)

        if self.use_tracker and changes.issues:
            self._enter(Stage.TRANSITIONING_STATUS)
            keys = ", ".join(issue.key for issue in changes.issues)
            self.messenger.emit(f"Setting {keys} in review", Emoji.BOOKMARK)
            await gather_ordered([self._mark_in_review(issue, pull_request) for issue in changes.issues])

        return pull_request

    async def _mark_in_review(self, issue: Issue, pull_request: PullRequest) -> None:
        await self.tracker.set_issue_status(IssueStatus.IN_REVIEW, issue.key)
        await self.tracker.add_comment(issue.key, f"Pull request: {pull_request.url}")
        log.info("issue_in_review", key=issue.key, pull_request=pull_request.number)
