"""Tests for domain models and enums."""

from datetime import UTC, datetime

import pytest

from ticketflow.enums import CommitCategory, IssueStatus, IssueType
from ticketflow.models.domain import BranchInfo, Commit, Issue, IssueReference, slugify


def make_commit(commit_hash: str, message: str) -> Commit:
    return Commit(
        hash=commit_hash,
        author="Jane Dev",
        email="jane@example.com",
        date=datetime(2024, 6, 15, tzinfo=UTC),
        message=message,
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Allow login with SSO", "allow_login_with_sso"),
        ("Fix: login fails for SSO users!", "fix_login_fails_for_sso_users"),
        ("  --weird   spacing--  ", "weird_spacing"),
        ("Ünïcode stays out", "n_code_stays_out"),
    ],
)
def test_slugify(text: str, expected: str):
    assert slugify(text) == expected


def test_slugify_truncates_without_trailing_separator():
    assert slugify("abc def", max_length=4) == "abc"


def test_issue_summary_slug(sample_issue: Issue):
    assert sample_issue.summary_slug == "allow_login_with_sso"


def test_issue_is_immutable(sample_issue: Issue):
    with pytest.raises(AttributeError):
        sample_issue.status = IssueStatus.IN_PROGRESS


def test_commit_subject():
    assert make_commit("a", "feat: add x\n\nbody").subject == "feat: add x"
    assert make_commit("b", "").subject == ""


@pytest.mark.parametrize(
    ("message", "category"),
    [
        ("feat: add SSO", CommitCategory.FEATURES),
        ("feat(auth): add SSO", CommitCategory.FEATURES),
        ("Fix: redirect loop", CommitCategory.FIXES),
        ("chore: bump deps", CommitCategory.CHORES),
        ("docs: readme", CommitCategory.CHORES),
        ("Update things", CommitCategory.CHORES),
    ],
)
def test_commit_category(message: str, category: CommitCategory):
    assert make_commit("a", message).category == category


def test_issue_type_short_names():
    assert [t.short_name for t in IssueType] == ["f", "b", "c"]


def test_enum_str_is_value():
    assert str(IssueStatus.IN_REVIEW) == "in-review"
    assert str(IssueType.BUG) == "bug"


def test_branch_info_category_of():
    info = BranchInfo(
        name="main",
        commits=[make_commit("c1", "fix: a\n\nFixes #ABC-1"), make_commit("c2", "feat: b\n\nFixes #ABC-1")],
        issues=[IssueReference(key="ABC-1", commit="c1", text="Fixes #ABC-1")],
    )

    assert info.issue_keys == ["ABC-1"]
    assert info.category_of("ABC-1") == CommitCategory.FIXES
    assert info.category_of("ABC-2") == CommitCategory.CHORES
