"""Shared fixtures for the MCP Jira Cloud test suite."""

import random

import httpx
import pytest

from mcp_jira_cloud.jira import JiraFetcher
from mcp_jira_cloud.jira.config import JiraConfig
from tests.fixtures.jira_mocks import JiraRouter

TEST_BASE_URL = "https://test.atlassian.net"


@pytest.fixture
def jira_config() -> JiraConfig:
    return JiraConfig(
        url=TEST_BASE_URL,
        username="user@example.com",
        api_token="api-token",
        max_attempts=3,
        retry_base_delay=0.01,
        retry_max_delay=0.1,
        bulk_concurrency=2,
    )


@pytest.fixture
def router() -> JiraRouter:
    return JiraRouter()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the executor's sleep function."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def http_client(router) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=TEST_BASE_URL, transport=httpx.MockTransport(router))


@pytest.fixture
def jira_fetcher(jira_config, http_client, fake_sleep) -> JiraFetcher:
    return JiraFetcher(
        config=jira_config,
        http_client=http_client,
        sleep=fake_sleep,
        rng=random.Random(0),
    )
