import asyncio
import logging
import os

import click
from dotenv import load_dotenv

__version__ = "0.1.0"

from .logging_config import log_operation, setup_logger

logger = logging.getLogger("mcp-jira-cloud")


@click.command()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be used multiple times)",
)
@click.option(
    "--env-file", type=click.Path(exists=True, dir_okay=False), help="Path to .env file"
)
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default=lambda: os.getenv("TRANSPORT", "stdio"),
    help="Transport type (stdio, sse or streamable-http)",
)
@click.option(
    "--host",
    default=lambda: os.getenv("HOST", "0.0.0.0"),
    help="Host to bind for HTTP transports",
)
@click.option(
    "--port",
    type=int,
    default=lambda: int(os.getenv("PORT", "8000")),
    help="Port to listen on for HTTP transports",
)
@click.option(
    "--read-only",
    is_flag=True,
    default=False,
    help="Hide and reject all write tools",
)
@click.option("--log-dir", help="Directory to store log files")
@click.option(
    "--jira-workspace",
    help="Jira Cloud workspace, the subdomain of <workspace>.atlassian.net",
)
@click.option(
    "--jira-url",
    help="Full Jira Cloud URL (e.g., https://your-domain.atlassian.net)",
)
@click.option("--jira-username", help="Jira account email")
@click.option("--jira-token", help="Jira API token")
@click.option(
    "--jira-ssl-verify/--no-jira-ssl-verify",
    default=None,
    help="Verify SSL certificates (default: verify)",
)
def main(
    verbose: int,
    env_file: str | None,
    transport: str,
    host: str,
    port: int,
    read_only: bool,
    log_dir: str | None,
    jira_workspace: str | None,
    jira_url: str | None,
    jira_username: str | None,
    jira_token: str | None,
    jira_ssl_verify: bool | None,
) -> None:
    """MCP Jira Cloud Server - Jira Cloud tools for MCP agents."""
    # Load environment variables from file if specified, otherwise try default .env
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    logging_level = os.getenv("LOG_LEVEL", "INFO")
    if verbose == 1:
        logging_level = "INFO"
    elif verbose >= 2:
        logging_level = "DEBUG"

    setup_logger(name="mcp-jira-cloud", level=logging_level, log_dir=log_dir)

    with log_operation(logger, "application_startup", app_version=__version__):
        # Command line arguments override the environment
        if jira_workspace:
            os.environ["JIRA_WORKSPACE"] = jira_workspace
        if jira_url:
            os.environ["JIRA_URL"] = jira_url
        if jira_username:
            os.environ["JIRA_USERNAME"] = jira_username
        if jira_token:
            os.environ["JIRA_API_TOKEN"] = jira_token
        if jira_ssl_verify is not None:
            os.environ["JIRA_SSL_VERIFY"] = str(jira_ssl_verify).lower()
        if read_only:
            os.environ["READ_ONLY_MODE"] = "true"

        from .servers.main import run_server

        logger.info(f"Starting MCP Jira Cloud v{__version__} with {transport} transport")

    asyncio.run(run_server(transport=transport, host=host, port=port))


__all__ = ["main", "__version__", "setup_logger", "log_operation"]

if __name__ == "__main__":
    main()
