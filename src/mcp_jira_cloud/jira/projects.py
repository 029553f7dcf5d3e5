"""Module for Jira project operations."""

import logging
from typing import Any

from .client import JiraClient
from .field_catalog import ManagementStyle

logger = logging.getLogger("mcp-jira-cloud.jira.projects")


def _simplify_project(project: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": project.get("id"),
        "key": project.get("key"),
        "name": project.get("name"),
        "projectTypeKey": project.get("projectTypeKey"),
        "managementStyle": ManagementStyle.from_project(project).value,
    }


class ProjectsMixin(JiraClient):
    """Mixin for Jira project operations."""

    async def list_projects(
        self, query: str | None = None, limit: int = 50
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"maxResults": limit, "orderBy": "key"}
        if query:
            params["query"] = query
        response = await self.request("GET", "/rest/api/3/project/search", params=params)
        return [_simplify_project(p) for p in (response or {}).get("values", [])]

    async def get_project(self, project_key: str) -> dict[str, Any]:
        """
        Get a project with its management style and issue types.

        Args:
            project_key: Project key or ID

        Returns:
            Project summary
        """
        project = await self.request("GET", f"/rest/api/3/project/{project_key}") or {}
        result = _simplify_project(project)
        result["lead"] = (project.get("lead") or {}).get("displayName")
        result["issueTypes"] = [
            {"id": t.get("id"), "name": t.get("name"), "subtask": t.get("subtask", False)}
            for t in project.get("issueTypes", [])
        ]
        return result
