from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_jira_cloud.jira import JiraFetcher
    from mcp_jira_cloud.jira.config import JiraConfig
    from mcp_jira_cloud.jira.field_catalog import FieldCatalog


@dataclass(frozen=True)
class MainAppContext:
    """Context holding the shared Jira client and server settings."""

    jira_config: JiraConfig | None = None
    field_catalog: FieldCatalog | None = None
    jira_fetcher: JiraFetcher | None = None
    read_only: bool = False
