"""Pytest configuration and shared fixtures."""

import os
import re
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from ticketflow.config.settings import GitConfig, JiraConfig
from ticketflow.enums import IssueStatus, IssueType
from ticketflow.git.repository import Git
from ticketflow.models.domain import Issue
from ticketflow.utils.logging_config import configure_logging
from ticketflow.utils.messenger import Messenger


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point HOME at a temp dir and drop ticketflow/CI variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("CI", raising=False)
    for name in list(os.environ):
        if name.upper().startswith("TICKETFLOW_"):
            monkeypatch.delenv(name, raising=False)
    configure_logging("CRITICAL")
    yield
    structlog.reset_defaults()


@pytest.fixture
def git_config() -> GitConfig:
    """Default git configuration."""
    return GitConfig()


@pytest.fixture
def jira_config() -> JiraConfig:
    """Jira configuration with test credentials."""
    return JiraConfig(
        root="https://jira.example.com/",
        user={"login": "dev@example.com", "token": "jira-token"},
    )


@pytest.fixture
def sample_issue() -> Issue:
    """Sample issue for testing."""
    return Issue(
        key="ABC-123",
        title="Allow login with SSO",
        type=IssueType.FEATURE,
        status=IssueStatus.OPEN,
        url="https://jira.example.com/browse/ABC-123",
    )


@pytest.fixture
def messenger() -> Messenger:
    """Messenger that records without printing."""
    return Messenger(quiet=True)


@pytest.fixture
def mock_tracker(sample_issue: Issue) -> MagicMock:
    """Issue tracker double with async methods."""
    tracker = MagicMock()
    tracker.get_issue = AsyncMock(return_value=sample_issue)
    tracker.create_issue_for_current_user = AsyncMock(return_value=sample_issue)
    tracker.set_issue_status = AsyncMock(
        side_effect=lambda status, key: Issue(
            key=key,
            title=sample_issue.title,
            type=sample_issue.type,
            status=status,
            url=sample_issue.url,
        )
    )
    tracker.add_comment = AsyncMock(return_value=None)
    tracker.release_issues = AsyncMock(return_value=None)
    tracker.close = AsyncMock(return_value=None)
    tracker.is_valid_issue_name = MagicMock(
        side_effect=lambda key: re.fullmatch(JiraConfig().issue_pattern, key) is not None
    )
    return tracker


@pytest.fixture
def mock_git(git_config: GitConfig) -> MagicMock:
    """VCS adapter double; every repository check passes."""
    git_adapter = MagicMock(spec=Git)
    git_adapter.config = git_config
    git_adapter.get_root_dir = MagicMock(return_value=Path("/repo"))
    git_adapter.does_branch_exist = AsyncMock(return_value=True)
    git_adapter.get_current_branch = AsyncMock(return_value="f/abc-123_allow_login_with_sso")
    git_adapter.get_branch_name_for_issue = MagicMock(return_value="f/abc-123_allow_login_with_sso")
    git_adapter.create_branch_and_stash_changes = AsyncMock(return_value=None)
    git_adapter.get_branch_info = AsyncMock()
    git_adapter.get_commits_since_last_tag = AsyncMock()
    git_adapter.push = AsyncMock(return_value=None)
    return git_adapter
