"""Module for Jira field operations."""

import logging
from typing import Any, Literal

from .client import JiraClient
from .field_catalog import FieldBinding, FieldMetadata, FieldScope, ManagementStyle

logger = logging.getLogger("mcp-jira-cloud.jira.fields")

CREATEMETA_PAGE_SIZE = 200


class FieldsMixin(JiraClient):
    """Mixin for Jira field operations.

    Field IDs in Jira differ across instances, especially for custom fields,
    so every semantic field reference goes through the shared
    :class:`~mcp_jira_cloud.jira.field_catalog.FieldCatalog`. This mixin
    supplies the metadata loader the catalog calls on a cache miss.
    """

    async def get_fields(self) -> list[dict[str, Any]]:
        """
        Get all available fields from Jira.

        Returns:
            List of field definitions
        """
        fields = await self.request("GET", "/rest/api/3/field")
        if not isinstance(fields, list):
            logger.warning(f"Unexpected field list payload: {type(fields).__name__}")
            return []
        self._log_available_fields(fields)
        return fields

    async def list_fields(
        self, field_type: Literal["all", "system", "custom"] = "all"
    ) -> list[dict[str, Any]]:
        """
        List fields in a compact form.

        Args:
            field_type: "system", "custom" or "all"

        Returns:
            Dicts with id, name, type and custom flag
        """
        result = []
        for field in await self.get_fields():
            is_custom = bool(field.get("custom", self.is_custom_field(field.get("id", ""))))
            if field_type == "custom" and not is_custom:
                continue
            if field_type == "system" and is_custom:
                continue
            result.append(
                {
                    "id": field.get("id"),
                    "name": field.get("name"),
                    "type": (field.get("schema") or {}).get("type"),
                    "custom": is_custom,
                }
            )
        return result

    async def get_issue_type_id(self, project_key: str, issue_type: str) -> str:
        """
        Get the ID of an issue type by its name for a specific project.

        Args:
            project_key: The project key (e.g., 'PROJ')
            issue_type: Issue type name (e.g., 'Story') or ID

        Returns:
            The issue type ID

        Raises:
            ValueError: If the project has no such issue type
        """
        if issue_type.isdigit():
            return issue_type

        response = await self.request(
            "GET", f"/rest/api/3/issue/createmeta/{project_key}/issuetypes"
        )
        issue_types = (response or {}).get("issueTypes") or (response or {}).get(
            "values", []
        )
        wanted = issue_type.strip().lower()
        for candidate in issue_types:
            names = {
                str(candidate.get("name", "")).lower(),
                str(candidate.get("untranslatedName", "")).lower(),
            }
            if wanted in names:
                return str(candidate.get("id"))

        available = ", ".join(str(t.get("name")) for t in issue_types)
        raise ValueError(
            f"Issue type '{issue_type}' not found in project '{project_key}'. "
            f"Available: {available}"
        )

    async def get_management_style(self, project_key: str) -> ManagementStyle:
        project = await self.request("GET", f"/rest/api/3/project/{project_key}")
        return ManagementStyle.from_project(project or {})

    async def get_applicable_field_ids(
        self, project_key: str, issue_type_id: str
    ) -> frozenset[str]:
        """
        Field IDs available on the create screen of a project/issue type.

        Args:
            project_key: The project key
            issue_type_id: The issue type ID

        Returns:
            Set of field IDs
        """
        field_ids: set[str] = set()
        start_at = 0
        while True:
            page = await self.request(
                "GET",
                f"/rest/api/3/issue/createmeta/{project_key}/issuetypes/{issue_type_id}",
                params={"startAt": start_at, "maxResults": CREATEMETA_PAGE_SIZE},
            )
            page = page or {}
            entries = page.get("fields") or page.get("values") or []
            if isinstance(entries, dict):
                field_ids.update(entries)
                break
            for entry in entries:
                field_id = entry.get("fieldId") or entry.get("key")
                if field_id:
                    field_ids.add(field_id)
            start_at += len(entries)
            total = page.get("total")
            if not entries or total is None or start_at >= total:
                break
        logger.debug(
            f"{len(field_ids)} fields applicable to {project_key}/{issue_type_id}"
        )
        return frozenset(field_ids)

    async def load_field_metadata(self, scope: FieldScope) -> FieldMetadata:
        """Fetch everything the field catalog needs for one scope."""
        fields = await self.get_fields()
        style = None
        applicable = None
        if scope.project_key:
            style = await self.get_management_style(scope.project_key)
            if scope.issue_type_id:
                applicable = await self.get_applicable_field_ids(
                    scope.project_key, scope.issue_type_id
                )
        return FieldMetadata(
            fields=fields, management_style=style, applicable_field_ids=applicable
        )

    async def field_scope(
        self, project_key: str | None = None, issue_type: str | None = None
    ) -> FieldScope:
        if project_key and issue_type:
            issue_type_id = await self.get_issue_type_id(project_key, issue_type)
            return FieldScope(project_key, issue_type_id)
        return FieldScope(project_key)

    async def get_issue_scope(self, issue_key: str) -> FieldScope:
        """Scope (project and issue type) of an existing issue."""
        issue = await self.request(
            "GET",
            f"/rest/api/3/issue/{issue_key}",
            params={"fields": "project,issuetype"},
        )
        fields = (issue or {}).get("fields") or {}
        return FieldScope(
            (fields.get("project") or {}).get("key"),
            (fields.get("issuetype") or {}).get("id"),
        )

    async def resolve_field(
        self, semantic_name: str, scope: FieldScope | None = None
    ) -> FieldBinding:
        """
        Resolve a semantic field name to the field ID used in a scope.

        Args:
            semantic_name: e.g. "story_points", "Sprint", "Epic Link"
            scope: Project/issue type scope (instance-wide when omitted)

        Returns:
            The field binding

        Raises:
            FieldNotResolvableError: If the field does not exist in the scope
        """
        return await self.field_catalog.resolve(
            semantic_name, scope or FieldScope(), self.load_field_metadata
        )

    def invalidate_field_cache(self, project_key: str | None = None) -> int:
        if project_key:
            return self.field_catalog.invalidate(project_key=project_key)
        return self.field_catalog.invalidate()

    def _log_available_fields(self, fields: list[dict]) -> None:
        logger.debug(f"{len(fields)} Jira fields available")
        for field in fields:
            field_id = field.get("id", "")
            name = field.get("name", "")
            field_type = (field.get("schema") or {}).get("type", "")
            logger.debug(f"{field_id}: {name} ({field_type})")

    def is_custom_field(self, field_id: str) -> bool:
        return field_id.startswith("customfield_")
