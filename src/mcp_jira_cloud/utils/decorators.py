import json
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from fastmcp import Context

from mcp_jira_cloud.exceptions import (
    FieldNotResolvableError,
    MCPJiraError,
    TransientUpstreamError,
    UpstreamError,
    classify_error,
)
from mcp_jira_cloud.logging_config import log_operation

logger = logging.getLogger("mcp-jira-cloud.utils.decorators")


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def check_write_access(func: F) -> F:
    """
    Decorator for FastMCP tools to check if the application is in read-only mode.
    If in read-only mode, it raises a ValueError.
    Assumes the decorated function is async and has `ctx: Context` as its first argument.
    """

    @wraps(func)
    async def wrapper(ctx: Context, *args: Any, **kwargs: Any) -> Any:
        lifespan_ctx_dict = ctx.request_context.lifespan_context
        app_lifespan_ctx = (
            lifespan_ctx_dict.get("app_lifespan_context")
            if isinstance(lifespan_ctx_dict, dict)
            else None
        )

        if app_lifespan_ctx is not None and app_lifespan_ctx.read_only:
            tool_name = func.__name__
            action_description = tool_name.replace("_", " ")  # "issue_delete" -> "issue delete"
            logger.warning(f"Attempted to call tool '{tool_name}' in read-only mode.")
            raise ValueError(f"Cannot {action_description} in read-only mode.")

        return await func(ctx, *args, **kwargs)

    return wrapper  # type: ignore


def error_payload(error: Exception) -> dict[str, Any]:
    """Build the JSON error object returned by tools."""
    error_type, retryable = classify_error(error)
    payload: dict[str, Any] = {
        "success": False,
        "error": str(error),
        "error_type": error_type,
        "retryable": retryable,
    }
    if isinstance(error, UpstreamError):
        payload["status_code"] = error.status_code
    if isinstance(error, TransientUpstreamError) and error.retry_after is not None:
        payload["retry_after"] = error.retry_after
    if isinstance(error, FieldNotResolvableError):
        payload["field"] = error.semantic_name
        payload["project_key"] = error.project_key
    return payload


def handle_tool_errors(func: F) -> F:
    """
    Decorator for FastMCP tools that turns domain errors into a JSON result.

    Jira failures, unsupported fields and invalid input come back to the agent
    as ``{"success": false, "error_type": ..., "retryable": ...}`` so it can
    decide whether to retry. Anything else propagates to FastMCP.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        with log_operation(logger, func.__name__):
            try:
                return await func(*args, **kwargs)
            except (MCPJiraError, ValueError) as e:
                level = logging.WARNING if isinstance(e, ValueError) else logging.ERROR
                logger.log(level, f"Tool '{func.__name__}' failed: {e}")
                return json.dumps(error_payload(e), indent=2, ensure_ascii=False)

    return wrapper  # type: ignore
