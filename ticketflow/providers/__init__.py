"""Issue tracker and code host clients."""

from ticketflow.providers.base import CodeHost, IssueTracker
from ticketflow.providers.github_rest import GitHubHost
from ticketflow.providers.jira import JiraTracker

__all__ = ["CodeHost", "GitHubHost", "IssueTracker", "JiraTracker"]
