import json
from unittest.mock import MagicMock

import pytest

from mcp_jira_cloud.exceptions import (
    FieldNotResolvableError,
    JiraAuthenticationError,
    TerminalUpstreamError,
    TransientUpstreamError,
)
from mcp_jira_cloud.utils.decorators import (
    check_write_access,
    error_payload,
    handle_tool_errors,
)


class DummyContext:
    def __init__(self, read_only):
        self.request_context = MagicMock()
        self.request_context.lifespan_context = {
            "app_lifespan_context": MagicMock(read_only=read_only)
        }


@pytest.mark.asyncio
async def test_check_write_access_blocks_in_read_only():
    @check_write_access
    async def issue_delete(ctx, x):
        return x * 2

    ctx = DummyContext(read_only=True)
    with pytest.raises(ValueError) as exc:
        await issue_delete(ctx, 3)
    assert str(exc.value) == "Cannot issue delete in read-only mode."


@pytest.mark.asyncio
async def test_check_write_access_allows_in_writable():
    @check_write_access
    async def dummy_tool(ctx, x):
        return x * 2

    ctx = DummyContext(read_only=False)
    result = await dummy_tool(ctx, 4)
    assert result == 8


@pytest.mark.asyncio
async def test_handle_tool_errors_returns_error_payload():
    @handle_tool_errors
    async def failing_tool():
        raise ValueError("something went wrong")

    payload = json.loads(await failing_tool())
    assert payload == {
        "success": False,
        "error": "something went wrong",
        "error_type": "invalid_input",
        "retryable": False,
    }


@pytest.mark.asyncio
async def test_handle_tool_errors_reports_rate_limit():
    @handle_tool_errors
    async def rate_limited_tool():
        raise TransientUpstreamError(
            "HTTP 429 (gave up after 4 attempts)", status_code=429, retry_after=30.0
        )

    payload = json.loads(await rate_limited_tool())
    assert payload["error_type"] == "transient"
    assert payload["retryable"] is True
    assert payload["status_code"] == 429
    assert payload["retry_after"] == 30.0


@pytest.mark.asyncio
async def test_handle_tool_errors_lets_unexpected_errors_through():
    @handle_tool_errors
    async def broken_tool():
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        await broken_tool()


@pytest.mark.asyncio
async def test_handle_tool_errors_preserves_return_value():
    @handle_tool_errors
    async def good_tool():
        return "success"

    result = await good_tool()
    assert result == "success"


def test_error_payload_for_unsupported_field():
    payload = error_payload(FieldNotResolvableError("epic_link", "TEAM", "10101"))

    assert payload["error_type"] == "unsupported_field"
    assert payload["retryable"] is False
    assert payload["field"] == "epic_link"
    assert payload["project_key"] == "TEAM"


@pytest.mark.parametrize(
    "error,error_type",
    [
        (TerminalUpstreamError("HTTP 400", status_code=400), "terminal"),
        (JiraAuthenticationError("HTTP 401", status_code=401), "terminal"),
    ],
)
def test_error_payload_terminal(error, error_type):
    payload = error_payload(error)
    assert payload["error_type"] == error_type
    assert payload["retryable"] is False
    assert "retry_after" not in payload
