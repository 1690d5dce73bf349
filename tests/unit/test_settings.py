"""Tests for ticketflow/config/settings.py."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from ticketflow.config.settings import (
    GitConfig,
    TicketflowSettings,
    _interpolate_env_vars,
    deep_merge,
    ensure_required,
    find_local_config,
    load_settings,
)
from ticketflow.exceptions import ConfigIncompleteError, ConfigurationError

COMPLETE = {
    "jira": {"root": "https://jira.example.com", "user": {"login": "dev@example.com", "token": "jira-token"}},
    "github": {"token": "ghp_token"},
}


def write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def home_config(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".ticketflow" / "config.yaml"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "project"
    (directory / "src" / "pkg").mkdir(parents=True)
    return directory


class TestDefaults:
    def test_defaults(self):
        settings = TicketflowSettings()

        assert settings.git.remote == "origin"
        assert settings.git.base_branch == "main"
        assert settings.git.branch_template == "{type_short}/{key}_{slug}"
        assert settings.jira.status_names.in_progress == "In Progress"
        assert settings.cache.enabled is True

    def test_missing_required_lists_every_key(self):
        assert TicketflowSettings().missing_required() == [
            "jira.root",
            "jira.user.login",
            "jira.user.token",
            "github.token",
        ]

    def test_git_config_is_frozen(self):
        with pytest.raises(ValueError):
            GitConfig().remote = "upstream"


class TestLayering:
    def test_local_file_overrides_home(self, home_config: Path, project_dir: Path):
        write_yaml(home_config, {**COMPLETE, "git": {"remote": "origin", "base_branch": "develop"}})
        write_yaml(project_dir / ".ticketflow.yaml", {"git": {"base_branch": "trunk"}})

        settings = load_settings(cwd=project_dir / "src" / "pkg", home_config=home_config)

        assert settings.git.base_branch == "trunk"
        assert settings.git.remote == "origin"
        assert settings.jira.user.token == "jira-token"

    def test_environment_overrides_files(self, home_config: Path, project_dir: Path, monkeypatch):
        write_yaml(home_config, COMPLETE)
        monkeypatch.setenv("TICKETFLOW_JIRA__USER__TOKEN", "from-env")
        monkeypatch.setenv("TICKETFLOW_GIT__REMOTE", "upstream")

        settings = load_settings(cwd=project_dir, home_config=home_config)

        assert settings.jira.user.token == "from-env"
        assert settings.jira.user.login == "dev@example.com"
        assert settings.git.remote == "upstream"

    def test_explicit_config_replaces_search(self, home_config: Path, project_dir: Path, tmp_path: Path):
        write_yaml(project_dir / ".ticketflow.yaml", {"git": {"base_branch": "trunk"}})
        explicit = write_yaml(tmp_path / "other.yaml", {"git": {"base_branch": "release"}})

        settings = load_settings(config_path=explicit, cwd=project_dir, home_config=home_config)

        assert settings.git.base_branch == "release"

    def test_explicit_config_must_exist(self, home_config: Path, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(config_path=tmp_path / "missing.yaml", home_config=home_config)

    def test_flags_override_everything(self, home_config: Path, project_dir: Path, monkeypatch):
        monkeypatch.setenv("TICKETFLOW_GIT__BASE_BRANCH", "develop")
        settings = load_settings(cwd=project_dir, home_config=home_config)

        overridden = settings.with_overrides(remote="fork", base_branch="hotfix")

        assert overridden.git.remote == "fork"
        assert overridden.git.base_branch == "hotfix"
        assert settings.git.base_branch == "develop"

    def test_with_overrides_without_flags_is_identity(self):
        settings = TicketflowSettings()

        assert settings.with_overrides() is settings

    def test_find_local_config_walks_up(self, project_dir: Path):
        local = write_yaml(project_dir / ".ticketflow.yaml", {})

        assert find_local_config(project_dir / "src" / "pkg") == local.resolve()

    def test_find_local_config_none(self, tmp_path: Path):
        empty = tmp_path / "nowhere"
        empty.mkdir()

        assert find_local_config(empty) is None


class TestYamlParsing:
    def test_invalid_yaml(self, home_config: Path, project_dir: Path):
        home_config.parent.mkdir(parents=True)
        home_config.write_text("jira: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_settings(cwd=project_dir, home_config=home_config)

    def test_non_mapping_yaml(self, home_config: Path, project_dir: Path):
        home_config.parent.mkdir(parents=True)
        home_config.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must be a YAML object"):
            load_settings(cwd=project_dir, home_config=home_config)

    def test_empty_file_is_empty_layer(self, home_config: Path, project_dir: Path):
        home_config.parent.mkdir(parents=True)
        home_config.write_text("")

        assert load_settings(cwd=project_dir, home_config=home_config).git.remote == "origin"

    def test_invalid_value(self, home_config: Path, project_dir: Path):
        write_yaml(home_config, {"cache": {"enabled": "not-a-bool"}})

        with pytest.raises(ConfigurationError, match="Failed to validate"):
            load_settings(cwd=project_dir, home_config=home_config)

    def test_interpolation(self, monkeypatch):
        monkeypatch.setenv("JIRA_TOKEN", "secret")

        content = _interpolate_env_vars("token: ${JIRA_TOKEN}\nroot: ${JIRA_ROOT:-https://jira.local}\n")

        assert content == "token: secret\nroot: https://jira.local\n"

    def test_interpolation_skips_comments(self):
        assert _interpolate_env_vars("# ${NOT_SET_ANYWHERE}") == "# ${NOT_SET_ANYWHERE}"

    def test_interpolation_missing_variable(self, home_config: Path, project_dir: Path):
        home_config.parent.mkdir(parents=True)
        home_config.write_text("github:\n  token: ${TICKETFLOW_TEST_UNSET}\n")

        with pytest.raises(ConfigurationError, match="TICKETFLOW_TEST_UNSET"):
            load_settings(cwd=project_dir, home_config=home_config)

    def test_deep_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"c": 3}, "e": 4})

        assert merged == {"a": {"b": 1, "c": 3}, "d": 1, "e": 4}


class TestEnsureRequired:
    def test_complete_settings_are_returned_unchanged(self, home_config: Path):
        settings = TicketflowSettings(**COMPLETE)
        prompt = MagicMock()

        assert ensure_required(settings, home_config=home_config, prompt=prompt) is settings
        prompt.assert_not_called()

    def test_prompts_once_per_missing_key_and_persists(self, home_config: Path):
        write_yaml(home_config, {"git": {"base_branch": "develop"}})
        settings = TicketflowSettings(
            jira={"root": "https://jira.example.com", "user": {"login": "dev@example.com"}},
            git={"base_branch": "develop"},
        )
        answers = {"Jira API token": "jira-token", "GitHub personal access token": "ghp_token"}
        prompt = MagicMock(side_effect=lambda text, hide_input: answers[text])

        completed = ensure_required(settings, home_config=home_config, interactive=True, prompt=prompt)

        assert prompt.call_count == 2
        assert all(call.kwargs["hide_input"] for call in prompt.call_args_list)
        assert completed.jira.user.token == "jira-token"
        assert completed.github.token == "ghp_token"
        assert completed.git.base_branch == "develop"

        persisted = yaml.safe_load(home_config.read_text())
        assert persisted["jira"]["user"]["token"] == "jira-token"
        assert persisted["github"]["token"] == "ghp_token"
        assert persisted["git"]["base_branch"] == "develop"

        reloaded = load_settings(cwd=home_config.parent, home_config=home_config)
        assert reloaded.missing_required() == ["jira.root", "jira.user.login"]

    def test_persisting_keeps_environment_references(self, home_config: Path, project_dir: Path, monkeypatch):
        monkeypatch.setenv("JIRA_TOKEN", "s3cret")
        home_config.parent.mkdir(parents=True)
        home_config.write_text(
            "jira:\n"
            "  root: https://jira.example.com\n"
            "  user:\n"
            "    login: dev@example.com\n"
            "    token: ${JIRA_TOKEN}\n"
        )
        settings = load_settings(cwd=project_dir, home_config=home_config)
        assert settings.jira.user.token == "s3cret"

        completed = ensure_required(
            settings,
            home_config=home_config,
            interactive=True,
            prompt=MagicMock(return_value="ghp_token"),
        )

        assert completed.jira.user.token == "s3cret"
        text = home_config.read_text()
        assert "${JIRA_TOKEN}" in text
        assert "s3cret" not in text
        assert yaml.safe_load(text)["github"]["token"] == "ghp_token"
        assert load_settings(cwd=project_dir, home_config=home_config).jira.user.token == "s3cret"

    def test_ci_refuses_to_prompt(self, home_config: Path, monkeypatch):
        monkeypatch.setenv("CI", "true")
        prompt = MagicMock()

        with pytest.raises(ConfigIncompleteError) as exc_info:
            ensure_required(TicketflowSettings(), home_config=home_config, prompt=prompt)

        assert exc_info.value.missing == ["jira.root", "jira.user.login", "jira.user.token", "github.token"]
        prompt.assert_not_called()
        assert not home_config.exists()
