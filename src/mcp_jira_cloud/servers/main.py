"""Main FastMCP server setup for Jira Cloud."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Literal

from fastmcp import FastMCP
from fastmcp.tools import Tool as FastMCPTool
from mcp.types import Tool as MCPTool
from starlette.requests import Request
from starlette.responses import JSONResponse

from mcp_jira_cloud.jira import JiraFetcher
from mcp_jira_cloud.jira.config import JiraConfig
from mcp_jira_cloud.jira.field_catalog import FieldCatalog
from mcp_jira_cloud.utils.io import is_read_only_mode

from .context import MainAppContext
from .jira import jira_mcp

logger = logging.getLogger("mcp-jira-cloud.server.main")

Transport = Literal["stdio", "sse", "streamable-http"]


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def build_app_context(read_only: bool | None = None) -> MainAppContext:
    """Create the shared Jira client from the environment.

    A missing or invalid configuration is logged and leaves the server
    running without a client; tools then report the problem.
    """
    if read_only is None:
        read_only = is_read_only_mode()
    try:
        config = JiraConfig.from_env()
    except ValueError as e:
        logger.error(f"Jira is not configured: {e}")
        return MainAppContext(read_only=read_only)

    catalog = FieldCatalog(ttl=config.field_cache_ttl, overrides=config.field_overrides)
    fetcher = JiraFetcher(config=config, field_catalog=catalog)
    logger.info(f"Jira configuration loaded for {config.url}")
    return MainAppContext(
        jira_config=config,
        field_catalog=catalog,
        jira_fetcher=fetcher,
        read_only=read_only,
    )


@asynccontextmanager
async def main_lifespan(app: FastMCP[MainAppContext]) -> AsyncIterator[dict]:
    logger.info("Jira Cloud MCP server lifespan starting...")
    app_context = build_app_context()
    logger.info(f"Read-only mode: {'ENABLED' if app_context.read_only else 'DISABLED'}")
    try:
        yield {"app_lifespan_context": app_context}
    finally:
        if app_context.jira_fetcher is not None:
            logger.debug("Closing Jira HTTP client...")
            await app_context.jira_fetcher.aclose()
        logger.info("Jira Cloud MCP server lifespan shutdown complete.")


class JiraCloudMCP(FastMCP[MainAppContext]):
    """FastMCP server that hides write tools in read-only mode."""

    async def _mcp_list_tools(self) -> list[MCPTool]:
        req_context = self._mcp_server.request_context
        lifespan_ctx_dict = req_context.lifespan_context if req_context else None
        app_lifespan_state: MainAppContext | None = (
            lifespan_ctx_dict.get("app_lifespan_context")
            if isinstance(lifespan_ctx_dict, dict)
            else None
        )
        read_only = getattr(app_lifespan_state, "read_only", False)

        all_tools: dict[str, FastMCPTool] = await self.get_tools()
        filtered_tools: list[MCPTool] = []
        for registered_name, tool_obj in all_tools.items():
            if read_only and "write" in tool_obj.tags:
                logger.debug(f"Excluding tool '{registered_name}' in read-only mode")
                continue
            filtered_tools.append(tool_obj.to_mcp_tool(name=registered_name))
        logger.debug(f"Listing {len(filtered_tools)} of {len(all_tools)} tools")
        return filtered_tools


def create_main_server(
    lifespan: Callable[[FastMCP], AbstractAsyncContextManager[dict]] = main_lifespan,
) -> JiraCloudMCP:
    """Build the top-level server with the Jira tools mounted under ``jira``."""
    server = JiraCloudMCP(name="Jira Cloud MCP", lifespan=lifespan)
    server.mount(jira_mcp, prefix="jira")

    @server.custom_route("/healthz", methods=["GET"], include_in_schema=False)
    async def _health_check_route(request: Request) -> JSONResponse:
        return await health_check(request)

    return server


main_mcp = create_main_server()


async def run_server(
    transport: Transport = "stdio", host: str = "0.0.0.0", port: int = 8000
) -> None:
    """Run the server with the given transport."""
    if transport == "stdio":
        await main_mcp.run_async(transport="stdio")
    else:
        logger.info(f"Starting server with {transport.upper()} transport on http://{host}:{port}")
        await main_mcp.run_async(transport=transport, host=host, port=port)
