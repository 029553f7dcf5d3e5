"""Configuration module for Jira Cloud API interactions."""

import os
from dataclasses import dataclass, field

from ..utils.env import get_env_float, get_env_int, is_env_ssl_verify


def parse_field_overrides(raw: str | None) -> dict[str, str]:
    """Parse ``semantic=customfield_X`` pairs separated by commas.

    Args:
        raw: Value such as ``"story_points=customfield_10016,sprint=customfield_10020"``

    Returns:
        Mapping of normalized semantic name to field ID

    Raises:
        ValueError: If an entry is not of the form ``name=id``
    """
    overrides: dict[str, str] = {}
    if not raw:
        return overrides
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, field_id = entry.partition("=")
        if not sep or not name.strip() or not field_id.strip():
            raise ValueError(
                f"Invalid JIRA_FIELD_OVERRIDES entry '{entry}', expected name=field_id"
            )
        overrides[name.strip().lower().replace(" ", "_")] = field_id.strip()
    return overrides


@dataclass
class JiraConfig:
    """Jira Cloud API configuration.

    Jira Cloud authenticates with the account email and an API token over
    HTTP basic auth; the HTTP client handles the header itself.
    """

    url: str  # Base URL, https://<workspace>.atlassian.net
    username: str  # Account email
    api_token: str  # API token
    ssl_verify: bool = True
    timeout: float = 30.0
    max_attempts: int = 4
    retry_base_delay: float = 0.5
    retry_max_delay: float = 30.0
    max_retry_after: float = 120.0
    field_cache_ttl: float = 600.0
    bulk_concurrency: int = 4
    field_overrides: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "JiraConfig":
        """Create configuration from environment variables.

        Returns:
            JiraConfig with values from environment variables

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        url = cls.get_url()

        username = os.getenv("JIRA_USERNAME")
        api_token = os.getenv("JIRA_API_TOKEN") or os.getenv("JIRA_TOKEN")
        if not (username and api_token):
            msg = "Jira Cloud authentication requires JIRA_USERNAME and JIRA_API_TOKEN"
            raise ValueError(msg)

        max_attempts = get_env_int("JIRA_MAX_ATTEMPTS", 4)
        if max_attempts < 1:
            raise ValueError("JIRA_MAX_ATTEMPTS must be at least 1")

        return cls(
            url=url,
            username=username,
            api_token=api_token,
            ssl_verify=is_env_ssl_verify("JIRA_SSL_VERIFY"),
            timeout=get_env_float("JIRA_TIMEOUT", 30.0),
            max_attempts=max_attempts,
            retry_base_delay=get_env_float("JIRA_RETRY_BASE_DELAY", 0.5),
            retry_max_delay=get_env_float("JIRA_RETRY_MAX_DELAY", 30.0),
            max_retry_after=get_env_float("JIRA_MAX_RETRY_AFTER", 120.0),
            field_cache_ttl=get_env_float("JIRA_FIELD_CACHE_TTL", 600.0),
            bulk_concurrency=max(1, get_env_int("JIRA_BULK_CONCURRENCY", 4)),
            field_overrides=parse_field_overrides(os.getenv("JIRA_FIELD_OVERRIDES")),
        )

    @staticmethod
    def get_url() -> str:
        """Get the Jira base URL from environment variables.

        ``JIRA_URL`` wins when set; otherwise the URL is derived from the
        ``JIRA_WORKSPACE`` subdomain.

        Returns:
            The Jira base URL without a trailing slash
        """
        url = os.getenv("JIRA_URL")
        if url:
            return url.rstrip("/")
        workspace = os.getenv("JIRA_WORKSPACE")
        if not workspace:
            error_msg = "Missing required JIRA_WORKSPACE (or JIRA_URL) environment variable"
            raise ValueError(error_msg)
        return f"https://{workspace.strip()}.atlassian.net"
