"""
The ``release`` command: changelog, tracker release and code host release.

The release covers every commit since the last tag (or since the
merge-base with the base branch when the repository has no tags). Issues
referenced by those commits are grouped by the category of the commit that
first referenced them. Sections are always emitted as features, fixes,
chores; inside a section issues keep commit order.
"""

from collections.abc import Callable, Sequence
from typing import Any

import structlog

from ticketflow.engine.pipeline import Command, Stage
from ticketflow.enums import CommitCategory
from ticketflow.git.repository import Git
from ticketflow.models.domain import LocalChanges, Release
from ticketflow.providers.base import CodeHost, IssueTracker
from ticketflow.rendering.engine import CHANGELOG_TEMPLATE, TemplateEngine
from ticketflow.utils.messenger import Emoji, Messenger

log = structlog.get_logger(__name__)

SECTION_TITLES = {
    CommitCategory.FEATURES: "Features",
    CommitCategory.FIXES: "Bug fixes",
    CommitCategory.CHORES: "Chores",
}


def group_issues(changes: LocalChanges) -> list[dict[str, Any]]:
    """Changelog sections in category order, empty sections left out."""
    sections = []
    for category in CommitCategory:
        issues = [issue for issue in changes.issues if changes.branch_info.category_of(issue.key) == category]
        if issues:
            sections.append({"category": category, "title": SECTION_TITLES[category], "issues": issues})
    return sections


class ReleaseCommand(Command[Release]):
    """Render the changelog and publish a release.

    With ``dry_run`` only the changelog is produced; neither the tracker
    nor the code host is modified, and ``code_host_factory`` is only called
    when a code host release is published.
    """

    def __init__(
        self,
        git: Git,
        tracker: IssueTracker,
        messenger: Messenger,
        code_host_factory: Callable[[], CodeHost] | None,
        templates: TemplateEngine,
        name: str,
        extra_issues: Sequence[str] = (),
        use_tracker: bool = True,
        create_vcs_release: bool = True,
        dry_run: bool = False,
    ) -> None:
        super().__init__(git, tracker, messenger)
        self.code_host_factory = code_host_factory
        self.templates = templates
        self.name = name
        self.extra_issues = list(extra_issues)
        self.use_tracker = use_tracker
        self.create_vcs_release = create_vcs_release
        self.dry_run = dry_run

    async def run_command(self) -> Release:
        self._enter(Stage.COLLECTING_CHANGES)
        self.messenger.emit("Reading commits since the last release", Emoji.PACKAGE)
        branch_info = await self.git.get_commits_since_last_tag()
        changes = await self.get_local_changes(branch_info, self.extra_issues, self.use_tracker)

        notes = self.templates.render(
            CHANGELOG_TEMPLATE,
            {"name": self.name, "sections": group_issues(changes)},
        )
        release = Release(name=self.name, tag=self.name, notes=notes, issues=list(changes.issues))

        if self.dry_run:
            log.info("release_dry_run", name=self.name, issues=len(changes.issues))
            return release

        self._enter(Stage.PUBLISHING)
        code_host: CodeHost | None = None
        if self.create_vcs_release and self.code_host_factory is not None:
            code_host = self.code_host_factory()
        try:
            if self.use_tracker and changes.issues:
                self.messenger.emit(f"Creating release {self.name} in Jira", Emoji.BOOKMARK)
                await self.tracker.release_issues(self.name, changes.issues)

            if code_host is not None:
                published = await self._publish(code_host, notes)
                release = Release(
                    name=self.name,
                    tag=self.name,
                    notes=notes,
                    url=published.url,
                    issues=list(changes.issues),
                )
        finally:
            if code_host is not None:
                await code_host.close()

        return release

    async def _publish(self, code_host: CodeHost, notes: str) -> Release:
        self.messenger.emit(f"Creating release {self.name} on GitHub", Emoji.ROCKET)
        target = await self.git.get_current_branch()
        published = await code_host.create_release(self.name, self.name, notes, target)
        self.messenger.emit(f"Release created: {published.url}", Emoji.LINK)
        return published
