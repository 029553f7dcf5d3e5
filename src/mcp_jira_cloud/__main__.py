"""Entry point for ``python -m mcp_jira_cloud``."""

from mcp_jira_cloud import main

if __name__ == "__main__":
    main()
