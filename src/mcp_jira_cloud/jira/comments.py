"""Module for Jira comment operations."""

import logging
from typing import Any

from ..models.jira.adf import as_adf, to_text
from .client import JiraClient

logger = logging.getLogger("mcp-jira-cloud.jira.comments")


def _simplify_comment(comment: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": comment.get("id"),
        "author": (comment.get("author") or {}).get("displayName", "Unknown"),
        "created": comment.get("created"),
        "updated": comment.get("updated"),
        "body": to_text(comment.get("body")),
    }


class CommentsMixin(JiraClient):
    """Mixin for Jira comment operations."""

    async def get_issue_comments(
        self, issue_key: str, limit: int = 50
    ) -> list[dict[str, Any]]:
        """
        Get comments for a specific issue, newest first.

        Args:
            issue_key: The issue key (e.g. 'PROJ-123')
            limit: Maximum number of comments to return

        Returns:
            List of comments with author, dates and the body rendered as text
        """
        response = await self.request(
            "GET",
            f"/rest/api/3/issue/{issue_key}/comment",
            params={"maxResults": limit, "orderBy": "-created"},
        )
        return [_simplify_comment(c) for c in (response or {}).get("comments", [])[:limit]]

    async def add_comment(
        self,
        issue_key: str,
        comment: str | dict[str, Any],
        visibility: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Add a comment to an issue.

        Args:
            issue_key: The issue key (e.g. 'PROJ-123')
            comment: Comment text (markdown-like) or an ADF document
            visibility: (optional) Restrict comment visibility
                (e.g. {"type":"group","value":"jira-users"})

        Returns:
            The created comment details
        """
        data: dict[str, Any] = {"body": as_adf(comment)}
        if visibility:
            data["visibility"] = visibility
        result = await self.request(
            "POST", f"/rest/api/3/issue/{issue_key}/comment", json=data
        )
        logger.info(f"Added comment {(result or {}).get('id')} to {issue_key}")
        return _simplify_comment(result or {})

    async def delete_comment(self, issue_key: str, comment_id: str) -> None:
        await self.request(
            "DELETE", f"/rest/api/3/issue/{issue_key}/comment/{comment_id}"
        )
