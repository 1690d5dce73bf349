"""
Configuration system using Pydantic for type-safe settings management.

Settings are layered, later layers winning:

1. ``~/.ticketflow/config.yaml`` (user-wide, also where prompted answers go)
2. the closest ``.ticketflow.yaml`` in the working directory or its parents,
   or the file passed with ``--config``
3. ``TICKETFLOW_*`` environment variables (nested with ``__``, e.g.
   ``TICKETFLOW_JIRA__USER__TOKEN``)
4. command line flags (``--remote``, ``--base-branch``)

YAML files support ``${VAR}`` and ``${VAR:-default}`` interpolation.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ticketflow.exceptions import ConfigIncompleteError, ConfigurationError

log = structlog.get_logger(__name__)

HOME_CONFIG_PATH = Path("~/.ticketflow/config.yaml")
LOCAL_CONFIG_NAME = ".ticketflow.yaml"

REQUIRED_KEYS: tuple[str, ...] = (
    "jira.root",
    "jira.user.login",
    "jira.user.token",
    "github.token",
)
SECRET_KEYS = frozenset({"jira.user.token", "github.token"})

PROMPTS = {
    "jira.root": "Jira root URL (e.g. https://example.atlassian.net)",
    "jira.user.login": "Jira login (e-mail)",
    "jira.user.token": "Jira API token",
    "github.token": "GitHub personal access token",
}


class JiraUserConfig(BaseModel):
    """Credentials for Jira basic auth."""

    login: str = Field(default="", description="Jira login, usually an e-mail address")
    token: str = Field(default="", description="Jira API token")


class JiraStatusNames(BaseModel):
    """Names of the Jira workflow statuses each ticketflow status maps to."""

    open: str = Field(default="To Do")
    in_progress: str = Field(default="In Progress")
    in_review: str = Field(default="In Review")
    resolved: str = Field(default="Done")
    released: str = Field(default="Done")


class JiraIssueTypeNames(BaseModel):
    """Jira issue type names for each ticketflow issue kind."""

    feature: str = Field(default="Story")
    bug: str = Field(default="Bug")
    chore: str = Field(default="Task")


class JiraConfig(BaseModel):
    """Jira tracker configuration."""

    root: str = Field(default="", description="Base URL of the Jira site")
    user: JiraUserConfig = Field(default_factory=JiraUserConfig)
    issue_pattern: str = Field(
        default=r"[A-Z][A-Z0-9_]*-\d+",
        description="Regular expression a whole issue key must match",
    )
    status_names: JiraStatusNames = Field(default_factory=JiraStatusNames)
    issue_types: JiraIssueTypeNames = Field(default_factory=JiraIssueTypeNames)


class GitConfig(BaseModel):
    """Local git configuration. Immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True)

    remote: str = Field(default="origin", description="Remote to fetch from and push to")
    base_branch: str = Field(default="main", description="Branch new work starts from")
    branch_template: str = Field(
        default="{type_short}/{key}_{slug}",
        description="Branch name template ({type_short}, {type}, {key}, {slug})",
    )
    issue_reference_pattern: str = Field(
        default=r"fixes\s+#([A-Z][A-Z0-9_]*-\d+)",
        description="Case-insensitive pattern for issue references; group 1 is the key",
    )


class GitHubConfig(BaseModel):
    """GitHub code host configuration."""

    token: str = Field(default="", description="Personal access token")
    api_url: str | None = Field(
        default=None,
        description="REST endpoint override; derived from the remote URL when unset",
    )


class CacheConfig(BaseModel):
    """Memoization store configuration."""

    enabled: bool = Field(default=True)
    path: str = Field(default="~/.ticketflow/cache.json")

    @property
    def file_path(self) -> Path:
        return Path(self.path).expanduser()


class TicketflowSettings(BaseSettings):
    """Main ticketflow settings.

    Combines all configuration sections. Environment variables take
    precedence over values loaded from YAML files.
    """

    model_config = SettingsConfigDict(
        env_prefix="TICKETFLOW_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    jira: JiraConfig = Field(default_factory=JiraConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment overrides them
        return env_settings, init_settings

    def with_overrides(self, remote: str | None = None, base_branch: str | None = None) -> TicketflowSettings:
        """Apply command line flags on top of the loaded settings."""
        updates = {}
        if remote:
            updates["remote"] = remote
        if base_branch:
            updates["base_branch"] = base_branch
        if not updates:
            return self
        return self.model_copy(update={"git": self.git.model_copy(update=updates)})

    def missing_required(self) -> list[str]:
        """Dotted paths of required keys that are unset or empty."""
        data = self.model_dump()
        return [key for key in REQUIRED_KEYS if not _get_path(data, key)]

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> TicketflowSettings:
        """Load settings from a single YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            TicketflowSettings instance

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        return build_settings(read_yaml_config(config_file))


def read_yaml_config(config_file: Path, interpolate: bool = True) -> dict[str, Any]:
    """Read one YAML layer, interpolating ``${VAR}`` references.

    An empty file is an empty layer. With ``interpolate=False`` references
    are kept verbatim, which is what gets written back to disk.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(config_file) as f:
            yaml_content = f.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file: {config_file}") from e

    if interpolate:
        try:
            yaml_content = _interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

    try:
        config_dict = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_file}: {e}") from e

    if config_dict is None:
        return {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration in {config_file} must be a YAML object, not a list or scalar")
    return config_dict


def build_settings(data: dict[str, Any]) -> TicketflowSettings:
    """Validate merged file data (plus the environment) into settings."""
    try:
        return TicketflowSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Failed to validate configuration: {e}") from e


def find_local_config(start: Path) -> Path | None:
    """Closest ``.ticketflow.yaml`` in ``start`` or any of its parents."""
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / LOCAL_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    config_path: Path | None = None,
    cwd: Path | None = None,
    home_config: Path | None = None,
) -> TicketflowSettings:
    """Load the layered configuration.

    Args:
        config_path: Explicit project config; replaces the search for
            ``.ticketflow.yaml``.
        cwd: Directory to start the project config search from.
        home_config: User-wide config file.

    Returns:
        Settings with file layers merged and the environment applied.
    """
    home_file = (home_config or HOME_CONFIG_PATH).expanduser()
    data: dict[str, Any] = {}
    if home_file.is_file():
        data = read_yaml_config(home_file)

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        local_file: Path | None = config_path
    else:
        local_file = find_local_config(cwd or Path.cwd())

    if local_file is not None:
        data = deep_merge(data, read_yaml_config(local_file))

    log.debug(
        "configuration_loaded",
        home=str(home_file) if home_file.is_file() else None,
        local=str(local_file) if local_file else None,
    )
    return build_settings(data)


def ensure_required(
    settings: TicketflowSettings,
    home_config: Path | None = None,
    interactive: bool | None = None,
    prompt: Callable[..., Any] = click.prompt,
) -> TicketflowSettings:
    """Prompt for missing required keys and persist the answers.

    Each missing key is asked for once and written to the user-wide config
    file so the next run finds it.

    Args:
        settings: Loaded settings
        home_config: File answers are written to
        interactive: Whether prompting is allowed; defaults to False when
            the ``CI`` environment variable is set
        prompt: Prompt function (click.prompt signature)

    Returns:
        Settings with the answers applied

    Raises:
        ConfigIncompleteError: If keys are missing and prompting is not allowed
    """
    missing = settings.missing_required()
    if not missing:
        return settings

    if interactive is None:
        interactive = not os.environ.get("CI")
    if not interactive:
        raise ConfigIncompleteError(missing)

    answers = {key: prompt(PROMPTS[key], hide_input=key in SECRET_KEYS) for key in missing}

    home_file = (home_config or HOME_CONFIG_PATH).expanduser()
    persisted = read_yaml_config(home_file, interpolate=False) if home_file.is_file() else {}
    data = settings.model_dump()
    for key, value in answers.items():
        _set_path(persisted, key, value)
        _set_path(data, key, value)

    home_file.parent.mkdir(parents=True, exist_ok=True)
    with open(home_file, "w") as f:
        yaml.safe_dump(persisted, f, default_flow_style=False, sort_keys=False)
    log.info("configuration_saved", path=str(home_file), keys=list(answers))

    return build_settings(data)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _get_path(data: dict[str, Any], dotted: str) -> Any:
    current: Any = data
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _set_path(data: dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    current = data
    for part in parents:
        current = current.setdefault(part, {})
    current[leaf] = value


def _interpolate_env_vars(content: str) -> str:
    """Interpolate ${VAR_NAME} placeholders with environment variables.

    Supports ``${VAR_NAME}`` (required) and ``${VAR_NAME:-default}``.
    YAML comment lines are left unchanged.

    Raises:
        ValueError: If a required environment variable is not set
    """
    pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default_value = match.group(2)
        value = os.getenv(var_name)

        if value is not None:
            return value
        elif default_value is not None:
            return default_value
        else:
            raise ValueError(f"Environment variable {var_name} is not set")

    def process_line(line: str) -> str:
        if line.lstrip().startswith("#"):
            return line
        return pattern.sub(replace_var, line)

    return "\n".join(process_line(line) for line in content.split("\n"))
