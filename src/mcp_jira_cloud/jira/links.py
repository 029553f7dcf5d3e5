"""Module for Jira issue link operations."""

import logging
from typing import Any

from ..models.jira.adf import as_adf
from .client import JiraClient

logger = logging.getLogger("mcp-jira-cloud.jira.links")


class LinksMixin(JiraClient):
    """Mixin for Jira issue link operations."""

    async def get_issue_link_types(self) -> list[dict[str, Any]]:
        """
        Get all available issue link types.

        Returns:
            Link types with id, name, inward and outward descriptions
        """
        response = await self.request("GET", "/rest/api/3/issueLinkType")
        return [
            {
                "id": link_type.get("id"),
                "name": link_type.get("name"),
                "inward": link_type.get("inward"),
                "outward": link_type.get("outward"),
            }
            for link_type in (response or {}).get("issueLinkTypes", [])
        ]

    async def create_issue_link(
        self,
        link_type: str,
        source_issue_key: str,
        target_issue_key: str,
        comment: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a link between two issues.

        Args:
            link_type: Link type name (e.g. "Blocks", "Relates")
            source_issue_key: Inward issue key
            target_issue_key: Outward issue key
            comment: Optional comment added to the link

        Returns:
            Summary of the created link
        """
        data: dict[str, Any] = {
            "type": {"name": link_type},
            "inwardIssue": {"key": source_issue_key},
            "outwardIssue": {"key": target_issue_key},
        }
        if comment:
            data["comment"] = {"body": as_adf(comment)}
        await self.request("POST", "/rest/api/3/issueLink", json=data)
        logger.info(f"Linked {source_issue_key} to {target_issue_key} ({link_type})")
        return {
            "link_type": link_type,
            "inward_issue": source_issue_key,
            "outward_issue": target_issue_key,
        }

    async def remove_issue_link(self, link_id: str) -> None:
        if not link_id:
            raise ValueError("Link ID is required")
        await self.request("DELETE", f"/rest/api/3/issueLink/{link_id}")
