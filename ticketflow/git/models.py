"""Git repository data models.

Example:
    >>> remote = GitRemote(name="origin", url="git@github.com:myorg/myrepo.git")
    >>> remote.repository().full_name
    'myorg/myrepo'
"""

from dataclasses import dataclass

from pydantic import BaseModel, field_validator

from ticketflow.git.parser import GitUrlParser


class RepositoryInfo(BaseModel):
    """Repository coordinates on the code host, parsed from a remote URL.

    Attributes:
        owner: Repository owner/organization
        repo: Repository name (without .git suffix)
        base_url: Web base URL of the host
        api_url: REST API endpoint of the host
        remote_name: Remote the information came from
    """

    owner: str
    repo: str
    base_url: str
    api_url: str
    remote_name: str

    @field_validator("owner", "repo")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Ensure owner and repo are not empty."""
        if not v or not v.strip():
            raise ValueError("Owner and repo must not be empty")
        return v.strip()

    @property
    def full_name(self) -> str:
        """Return owner/repo format."""
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class GitRemote:
    """A configured Git remote.

    Attributes:
        name: Remote name (e.g., 'origin', 'upstream')
        url: Fetch/push URL from git config
    """

    name: str
    url: str

    def repository(self) -> RepositoryInfo:
        """Parse the remote URL into repository coordinates.

        Raises:
            InvalidGitUrlError: If the URL is not an SSH or HTTPS remote.
        """
        parser = GitUrlParser(self.url)
        return RepositoryInfo(
            owner=parser.owner,
            repo=parser.repo,
            base_url=parser.base_url,
            api_url=parser.api_url,
            remote_name=self.name,
        )
