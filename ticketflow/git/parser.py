"""Git remote URL parsing.

Remote URLs come back from git in SSH or HTTPS form. The code host client
needs the owner, the repository name and the API endpoint of the host, all
of which are derived here.

Supported URL formats:
    SSH:
        - git@github.com:owner/repo.git
        - user@github.example.com:owner/repo
        - ssh://git@github.com/owner/repo.git

    HTTPS:
        - https://github.com/owner/repo.git
        - https://github.example.com:8443/owner/repo

Example:
    >>> parser = GitUrlParser("git@github.com:owner/repo.git")
    >>> parser.full_name
    'owner/repo'
    >>> parser.api_url
    'https://api.github.com'
"""

import re
from typing import Literal

from ticketflow.git.exceptions import InvalidGitUrlError


class GitUrlParser:
    """Parser for Git remote URLs in SSH and HTTPS formats.

    The URL is parsed on construction; InvalidGitUrlError is raised when it
    is not recognized, so every property is valid on a constructed parser.

    Attributes:
        url: Original URL that was parsed (whitespace trimmed).
    """

    # git@host:owner/repo(.git); requires user@ so https:// URLs don't match
    SCP_PATTERN = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[a-zA-Z0-9._-]+):(?P<path>[^/].*?)(?:\.git)?/?$")

    SSH_PATTERN = re.compile(
        r"^ssh://(?:[\w.-]+@)?(?P<host>[a-zA-Z0-9._-]+)(?::(?P<port>\d+))?/(?P<path>.+?)(?:\.git)?/?$"
    )

    HTTPS_PATTERN = re.compile(
        r"^https?://(?:[^@/]+@)?(?P<host>[a-zA-Z0-9._-]+)(?::(?P<port>\d+))?/(?P<path>.+?)(?:\.git)?/?$"
    )

    def __init__(self, url: str) -> None:
        """Parse a remote URL.

        Args:
            url: Remote URL as printed by ``git remote -v``

        Raises:
            InvalidGitUrlError: If the URL is not SSH or HTTPS or has no
                owner/repo path.
        """
        self.url = url.strip()
        self.url_type: Literal["ssh", "https"]
        self.port: int | None = None

        match = self.SCP_PATTERN.match(self.url) or self.SSH_PATTERN.match(self.url)
        if match:
            self.url_type = "ssh"
        else:
            match = self.HTTPS_PATTERN.match(self.url)
            if not match:
                raise InvalidGitUrlError(self.url, reason="Must be SSH (git@host:path) or HTTPS (https://host/path)")
            self.url_type = "https"
            if match.group("port"):
                self.port = int(match.group("port"))

        self.host: str = match.group("host")
        parts = match.group("path").strip("/").split("/")
        if len(parts) < 2 or not parts[0] or not parts[-1]:
            raise InvalidGitUrlError(self.url, reason="Path must contain owner/repo")

        # Nested groups keep everything but the last component as the owner
        self.owner: str = "/".join(parts[:-1])
        self.repo: str = parts[-1]

    @property
    def full_name(self) -> str:
        """Repository in ``owner/repo`` form."""
        return f"{self.owner}/{self.repo}"

    @property
    def base_url(self) -> str:
        """Web base URL of the host (always HTTPS)."""
        if self.port and self.url_type == "https":
            return f"https://{self.host}:{self.port}"
        return f"https://{self.host}"

    @property
    def api_url(self) -> str:
        """REST API endpoint of the host.

        github.com uses ``api.github.com``; GitHub Enterprise installs
        serve the API under ``/api/v3`` on the web host.
        """
        if self.host == "github.com":
            return "https://api.github.com"
        return f"{self.base_url}/api/v3"
