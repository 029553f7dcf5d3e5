"""Dependency provider for the JiraFetcher used by tool functions."""

from __future__ import annotations

import logging

from fastmcp import Context

from mcp_jira_cloud.jira import JiraFetcher
from mcp_jira_cloud.servers.context import MainAppContext

logger = logging.getLogger("mcp-jira-cloud.servers.dependencies")


def get_app_context(ctx: Context) -> MainAppContext | None:
    lifespan_ctx_dict = ctx.request_context.lifespan_context  # type: ignore
    app_lifespan_ctx: MainAppContext | None = (
        lifespan_ctx_dict.get("app_lifespan_context")
        if isinstance(lifespan_ctx_dict, dict)
        else None
    )
    return app_lifespan_ctx


async def get_jira_fetcher(ctx: Context) -> JiraFetcher:
    """Returns the JiraFetcher created by the server lifespan.

    The fetcher, and with it the HTTP connection pool and the field catalog,
    is shared by all tool calls.

    Args:
        ctx: The FastMCP context.

    Returns:
        JiraFetcher instance.

    Raises:
        ValueError: If Jira is not configured.
    """
    app_lifespan_ctx = get_app_context(ctx)
    if app_lifespan_ctx is None or app_lifespan_ctx.jira_fetcher is None:
        logger.error("Jira client is not available in the lifespan context.")
        raise ValueError(
            "Jira client (fetcher) not available. Ensure JIRA_WORKSPACE or JIRA_URL, "
            "JIRA_USERNAME and JIRA_API_TOKEN are set."
        )
    logger.debug("get_jira_fetcher: using JiraFetcher from lifespan context.")
    return app_lifespan_ctx.jira_fetcher
