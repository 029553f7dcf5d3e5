"""Module for Jira user operations."""

import logging
from typing import Any

from .client import JiraClient

logger = logging.getLogger("mcp-jira-cloud.jira.users")


def _simplify_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "accountId": user.get("accountId"),
        "displayName": user.get("displayName"),
        "emailAddress": user.get("emailAddress"),
        "active": user.get("active"),
        "accountType": user.get("accountType"),
        "timeZone": user.get("timeZone"),
    }


class UsersMixin(JiraClient):
    """Mixin for Jira user operations."""

    async def get_myself(self) -> dict[str, Any]:
        """Get the authenticated user and remember their account ID."""
        myself = await self.request("GET", "/rest/api/3/myself") or {}
        if myself.get("accountId"):
            self._current_user_account_id = myself["accountId"]
        return _simplify_user(myself)

    async def search_users(self, query: str, limit: int = 20) -> list[dict[str, Any]]:
        """
        Find users by name or email.

        Args:
            query: Text matched against display name and email
            limit: Maximum number of users

        Returns:
            Matching users
        """
        if not query.strip():
            raise ValueError("User search query cannot be empty")
        users = await self.request(
            "GET",
            "/rest/api/3/user/search",
            params={"query": query, "maxResults": limit},
        )
        if not isinstance(users, list):
            logger.warning(f"Unexpected user search payload: {type(users).__name__}")
            return []
        return [_simplify_user(u) for u in users[:limit]]
