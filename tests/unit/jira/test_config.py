"""Tests for the Jira config module."""

import pytest

from mcp_jira_cloud.jira.config import JiraConfig, parse_field_overrides

JIRA_ENV_VARS = (
    "JIRA_URL",
    "JIRA_WORKSPACE",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_TOKEN",
    "JIRA_SSL_VERIFY",
    "JIRA_TIMEOUT",
    "JIRA_MAX_ATTEMPTS",
    "JIRA_RETRY_BASE_DELAY",
    "JIRA_RETRY_MAX_DELAY",
    "JIRA_MAX_RETRY_AFTER",
    "JIRA_FIELD_CACHE_TTL",
    "JIRA_BULK_CONCURRENCY",
    "JIRA_FIELD_OVERRIDES",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in JIRA_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("JIRA_USERNAME", "user@example.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "secret")
    return monkeypatch


def test_from_env_with_workspace(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")

    config = JiraConfig.from_env()

    assert config.url == "https://acme.atlassian.net"
    assert config.username == "user@example.com"
    assert config.api_token == "secret"
    assert config.ssl_verify is True
    assert config.max_attempts == 4
    assert config.field_overrides == {}


def test_url_wins_over_workspace(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")
    clean_env.setenv("JIRA_URL", "https://jira.acme.example/")

    assert JiraConfig.from_env().url == "https://jira.acme.example"


def test_missing_site(clean_env):
    with pytest.raises(ValueError, match="JIRA_WORKSPACE"):
        JiraConfig.from_env()


def test_missing_credentials(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")
    clean_env.delenv("JIRA_API_TOKEN")

    with pytest.raises(ValueError, match="JIRA_API_TOKEN"):
        JiraConfig.from_env()


def test_legacy_token_variable(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")
    clean_env.delenv("JIRA_API_TOKEN")
    clean_env.setenv("JIRA_TOKEN", "legacy")

    assert JiraConfig.from_env().api_token == "legacy"


def test_tuning_values(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")
    clean_env.setenv("JIRA_SSL_VERIFY", "false")
    clean_env.setenv("JIRA_MAX_ATTEMPTS", "6")
    clean_env.setenv("JIRA_FIELD_CACHE_TTL", "60")
    clean_env.setenv("JIRA_BULK_CONCURRENCY", "0")
    clean_env.setenv("JIRA_TIMEOUT", "not-a-number")
    clean_env.setenv("JIRA_FIELD_OVERRIDES", "Story Points=customfield_10100")

    config = JiraConfig.from_env()

    assert config.ssl_verify is False
    assert config.max_attempts == 6
    assert config.field_cache_ttl == 60.0
    assert config.bulk_concurrency == 1
    assert config.timeout == 30.0
    assert config.field_overrides == {"story_points": "customfield_10100"}


def test_max_attempts_must_be_positive(clean_env):
    clean_env.setenv("JIRA_WORKSPACE", "acme")
    clean_env.setenv("JIRA_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError, match="at least 1"):
        JiraConfig.from_env()


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, {}),
        ("", {}),
        ("sprint=customfield_10020, ,team=customfield_10001", {
            "sprint": "customfield_10020",
            "team": "customfield_10001",
        }),
    ],
)
def test_parse_field_overrides(raw, expected):
    assert parse_field_overrides(raw) == expected


@pytest.mark.parametrize("raw", ["story_points", "=customfield_1", "sprint="])
def test_parse_field_overrides_rejects_bad_entries(raw):
    with pytest.raises(ValueError, match="expected name=field_id"):
        parse_field_overrides(raw)
