"""Local git operations used by ticketflow commands.

The Git class is the VCS adapter: it fetches, stashes, creates branches,
reads commit history and resolves remotes, translating failures of the
git executable into the typed errors of ticketflow.git.exceptions.

Every git invocation goes through the async subprocess helper so that git
never blocks the event loop while tracker requests are in flight. The
repository root and remote listing come from GitPython.

Example:
    >>> git_adapter = Git(GitConfig(remote="origin", base_branch="main"))
    >>> await git_adapter.create_branch_and_stash_changes("f/abc-123_add_sso")
    >>> info = await git_adapter.get_branch_info()
    >>> info.issue_keys
    ['ABC-123']
"""

import re
import subprocess
from datetime import datetime
from pathlib import Path

import git
import structlog
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from ticketflow.config.settings import GitConfig
from ticketflow.exceptions import ConfigurationError
from ticketflow.git.exceptions import (
    BranchAlreadyExistsError,
    GitCommandFailedError,
    NoRemotesError,
    NotGitRepositoryError,
)
from ticketflow.git.models import GitRemote
from ticketflow.models.domain import BranchInfo, Commit, Issue, IssueReference
from ticketflow.utils.async_subprocess import run_command

log = structlog.get_logger(__name__)

STASH_MESSAGE = "Auto generated by ticketflow"

# Unit and record separators never appear in commit metadata
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"--format=%H{_FIELD_SEP}%an{_FIELD_SEP}%ae{_FIELD_SEP}%aI{_FIELD_SEP}%B{_RECORD_SEP}"


class Git:
    """VCS adapter over the local repository.

    Attributes:
        config: Remote, base branch, branch template and reference pattern.
        repo_path: Any path inside the repository.
    """

    def __init__(self, config: GitConfig, repo_path: str | Path = ".") -> None:
        self.config = config
        self.repo_path = Path(repo_path).resolve()
        self._repo: git.Repo | None = None
        self._reference_pattern = re.compile(config.issue_reference_pattern, re.IGNORECASE)

    def _get_repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise NotGitRepositoryError(str(self.repo_path)) from e
        return self._repo

    async def _git(self, *args: str) -> str:
        """Run git and return stdout.

        Raises:
            NotGitRepositoryError: If git reports it is outside a repository.
            GitCommandFailedError: For any other non-zero exit.
        """
        log.debug("git_command", args=list(args))
        try:
            stdout, _, _ = await run_command("git", *args, cwd=self.repo_path)
        except subprocess.CalledProcessError as e:
            stderr = e.stderr or ""
            if "not a git repository" in stderr.lower():
                raise NotGitRepositoryError(str(self.repo_path)) from e
            raise GitCommandFailedError(list(args), stderr, e.returncode) from e
        except FileNotFoundError as e:
            raise GitCommandFailedError(list(args), "git executable not found", 127) from e
        return stdout

    def get_root_dir(self) -> Path:
        """Root of the working tree.

        Raises:
            NotGitRepositoryError: If repo_path is not inside a repository.
        """
        repo = self._get_repo()
        if repo.working_tree_dir is None:
            raise NotGitRepositoryError(str(self.repo_path))
        return Path(repo.working_tree_dir)

    def list_remotes(self) -> list[GitRemote]:
        """All configured remotes, in git config order."""
        return [GitRemote(name=remote.name, url=remote.url) for remote in self._get_repo().remotes]

    def get_remote(self, name: str | None = None) -> GitRemote:
        """Get a remote by name, falling back to the first remote.

        Args:
            name: Remote to look up; defaults to the configured remote.

        Raises:
            NoRemotesError: If the repository has no remotes at all.
        """
        wanted = name or self.config.remote
        remotes = self.list_remotes()
        if not remotes:
            raise NoRemotesError()

        for remote in remotes:
            if remote.name == wanted:
                return remote

        log.warning("remote_not_found_using_first", requested=wanted, using=remotes[0].name)
        return remotes[0]

    async def get_current_branch(self) -> str:
        """Name of the checked out branch."""
        return (await self._git("rev-parse", "--abbrev-ref", "HEAD")).strip()

    async def does_branch_exist(self, name: str) -> bool:
        """True if a local branch or a remote-tracking ``*/name`` exists."""
        output = await self._git(
            "for-each-ref",
            "--format=%(refname:short)",
            f"refs/heads/{name}",
            f"refs/remotes/*/{name}",
        )
        return bool(output.strip())

    def get_branch_name_for_issue(self, issue: Issue) -> str:
        """Render the branch template for an issue.

        Placeholders: ``{type_short}`` (f/b/c), ``{type}``, ``{key}`` (lower
        case) and ``{slug}`` (summary slug, at most 72 characters).

        Raises:
            ConfigurationError: If the template uses an unknown placeholder.
        """
        try:
            return self.config.branch_template.format(
                type_short=issue.type.short_name,
                type=issue.type.value,
                key=issue.key.lower(),
                slug=issue.summary_slug,
            )
        except (KeyError, IndexError) as e:
            raise ConfigurationError(f"Invalid branch template {self.config.branch_template!r}: unknown field {e}") from e

    async def create_branch_and_stash_changes(self, name: str) -> None:
        """Create ``name`` from the tip of the remote base branch.

        Fetches the base branch, stashes uncommitted changes (untracked files
        included) when the tree is dirty, and checks out the new branch at
        the latest remote base commit, never at local HEAD.

        Raises:
            BranchAlreadyExistsError: If the branch exists; checked before
                anything is fetched or stashed.
            NotGitRepositoryError: Outside a repository.
            GitCommandFailedError: If any git step fails.
        """
        if await self.does_branch_exist(name):
            raise BranchAlreadyExistsError(name)

        remote = self.config.remote
        base = self.config.base_branch
        await self._git("fetch", remote, base)

        status = await self._git("status", "--porcelain")
        if status.strip():
            await self._git("stash", "push", "--include-untracked", "-m", STASH_MESSAGE)
            log.info("changes_stashed", message=STASH_MESSAGE)

        latest_hash = (await self._git("log", "-n1", "--format=%H", f"remotes/{remote}/{base}")).strip()

        try:
            await self._git("checkout", "-b", name, latest_hash)
        except GitCommandFailedError as e:
            if "already exists" in e.stderr:
                raise BranchAlreadyExistsError(name) from e
            raise

        log.info("branch_created", branch=name, start_point=latest_hash)

    async def get_branch_info(self) -> BranchInfo:
        """Commits between the merge-base with the remote base branch and HEAD."""
        name = await self.get_current_branch()
        merge_base = await self._merge_base()
        commits = await self._get_commits(f"{merge_base}..HEAD")
        return BranchInfo(name=name, commits=commits, issues=self._extract_references(commits))

    async def get_last_tag(self) -> str | None:
        """Most recent tag reachable from HEAD, or None without tags."""
        try:
            tag = await self._git("describe", "--tags", "--abbrev=0")
        except GitCommandFailedError:
            return None
        return tag.strip() or None

    async def get_commits_since_last_tag(self) -> BranchInfo:
        """Commits from the last tag to HEAD.

        Falls back to the merge-base range when the repository has no tags.
        """
        name = await self.get_current_branch()
        tag = await self.get_last_tag()
        start = tag if tag is not None else await self._merge_base()
        log.debug("release_range", start=start, tag=tag)
        commits = await self._get_commits(f"{start}..HEAD")
        return BranchInfo(name=name, commits=commits, issues=self._extract_references(commits))

    async def push(self) -> None:
        """Push the current branch and set its upstream."""
        branch = await self.get_current_branch()
        await self._git("push", "-u", self.config.remote, branch)
        log.info("branch_pushed", branch=branch, remote=self.config.remote)

    async def _merge_base(self) -> str:
        target = f"{self.config.remote}/{self.config.base_branch}"
        return (await self._git("merge-base", "HEAD", target)).strip()

    async def _get_commits(self, revision_range: str) -> list[Commit]:
        output = await self._git("log", "--reverse", _LOG_FORMAT, revision_range)
        return parse_log(output)

    def _extract_references(self, commits: list[Commit]) -> list[IssueReference]:
        seen: set[str] = set()
        references = []
        for commit in commits:
            for match in self._reference_pattern.finditer(commit.message):
                key = match.group(1).upper()
                if key not in seen:
                    seen.add(key)
                    references.append(IssueReference(key=key, commit=commit.hash, text=match.group(0)))
        return references


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with the adapter's record format."""
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.lstrip("\n")
        if not record.strip():
            continue
        commit_hash, author, email, date, message = record.split(_FIELD_SEP, 4)
        commits.append(
            Commit(
                hash=commit_hash,
                author=author,
                email=email,
                date=datetime.fromisoformat(date),
                message=message.strip(),
            )
        )
    return commits
