"""Enumerations for ticketflow issue and commit types."""

from enum import Enum


class IssueType(str, Enum):
    """Kinds of issues ticketflow creates and understands.

    Tracker-specific type names (Story, Bug, Task) are mapped onto these
    by the tracker client.
    """

    FEATURE = "feature"
    BUG = "bug"
    CHORE = "chore"

    def __str__(self) -> str:
        return self.value

    @property
    def short_name(self) -> str:
        """One-letter prefix used in branch names."""
        return {
            IssueType.FEATURE: "f",
            IssueType.BUG: "b",
            IssueType.CHORE: "c",
        }[self]


class IssueStatus(str, Enum):
    """Workflow states an issue moves through.

    The typical path is:
    OPEN -> IN_PROGRESS -> IN_REVIEW -> RESOLVED -> RELEASED
    """

    OPEN = "open"
    IN_PROGRESS = "in-progress"
    IN_REVIEW = "in-review"
    RESOLVED = "resolved"
    RELEASED = "released"

    def __str__(self) -> str:
        return self.value


class CommitCategory(str, Enum):
    """Changelog category inferred from a conventional commit prefix.

    Declaration order is the order sections appear in the changelog.
    """

    FEATURES = "features"
    FIXES = "fixes"
    CHORES = "chores"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_message(cls, message: str) -> "CommitCategory":
        """Infer the category from a commit message.

        ``feat`` prefixes are features, ``fix`` prefixes are fixes and
        everything else (chore, docs, refactor, untyped) is a chore.

        Args:
            message: Full commit message

        Returns:
            Category of the commit
        """
        subject = message.strip().lower()
        if subject.startswith("feat"):
            return cls.FEATURES
        if subject.startswith("fix"):
            return cls.FIXES
        return cls.CHORES
