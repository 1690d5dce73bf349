"""Configuration system for ticketflow.

This package provides type-safe configuration management using Pydantic,
layering the user-wide config file, the project config file, the
environment and command line flags.

Key Components:
    - TicketflowSettings: Main configuration container
    - JiraConfig: Tracker location, credentials and workflow names
    - GitConfig: Remote, base branch and branch naming
    - GitHubConfig: Code host credentials
    - CacheConfig: Memoization store location

Example:
    >>> from ticketflow.config import load_settings
    >>> settings = load_settings()
    >>> settings.git.base_branch
    'main'
"""

from ticketflow.config.settings import (
    CacheConfig,
    GitConfig,
    GitHubConfig,
    JiraConfig,
    TicketflowSettings,
    ensure_required,
    load_settings,
)

__all__ = [
    "CacheConfig",
    "GitConfig",
    "GitHubConfig",
    "JiraConfig",
    "TicketflowSettings",
    "ensure_required",
    "load_settings",
]
