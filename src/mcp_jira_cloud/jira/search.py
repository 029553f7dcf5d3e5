"""Module for Jira search operations."""

import logging
import re
from typing import Any

from .client import JiraClient
from .projection import FilterPreset, preset_request_fields
from .utils import escape_jql_string

logger = logging.getLogger("mcp-jira-cloud.jira.search")

# Quoted literals are matched first so an ORDER BY inside them is skipped.
_ORDER_BY_TOKEN = re.compile(
    r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|\border\s+by\b",
    re.IGNORECASE,
)


def split_order_by(jql: str) -> tuple[str, str]:
    """Split raw JQL into its predicate and an unquoted trailing ``ORDER BY`` clause."""
    start = -1
    for match in _ORDER_BY_TOKEN.finditer(jql):
        if match.group(0)[0] not in "\"'":
            start = match.start()
    if start < 0:
        return jql.strip(), ""
    return jql[:start].strip(), jql[start:].strip()


def build_jql(
    text: str | None = None,
    status: str | None = None,
    assignee: str | None = None,
    jql: str | None = None,
    *,
    unassigned: bool = False,
) -> str:
    """
    Combine simple filters and raw JQL into one query.

    Clauses are joined with AND. An ``ORDER BY`` in the raw JQL is moved to
    the end of the combined query.

    Args:
        text: Full-text search term
        status: Exact status name
        assignee: Account ID
        jql: Raw JQL, optionally with ORDER BY
        unassigned: Match issues without an assignee

    Returns:
        The JQL string (may be empty)
    """
    parts: list[str] = []
    order_by = ""
    if text:
        parts.append(f"text ~ {escape_jql_string(text)}")
    if status:
        parts.append(f"status = {escape_jql_string(status)}")
    if unassigned:
        parts.append("assignee is EMPTY")
    elif assignee:
        parts.append(f"assignee = {escape_jql_string(assignee)}")
    if jql and jql.strip():
        predicate, order_by = split_order_by(jql)
        if predicate:
            parts.append(f"({predicate})")

    query = " AND ".join(parts)
    if order_by:
        query = f"{query} {order_by}" if query else order_by
    return query


class SearchMixin(JiraClient):
    """Mixin for Jira search operations."""

    async def search_issues(
        self,
        text: str | None = None,
        status: str | None = None,
        assignee: str | None = None,
        jql: str | None = None,
        limit: int = 50,
        preset: FilterPreset | str = FilterPreset.STANDARD,
        next_page_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Search for issues with the enhanced JQL search endpoint.

        Args:
            text: Full-text search term
            status: Status name
            assignee: "me", "unassigned" or an account ID
            jql: Raw JQL
            limit: Maximum number of issues (1-100)
            preset: Filter preset controlling the requested fields
            next_page_token: Token from a previous page

        Returns:
            Raw response with ``issues`` and paging information

        Raises:
            ValueError: If no search criteria were given
        """
        account_id = None
        unassigned = False
        if assignee:
            lowered = assignee.strip().lower()
            if lowered == "me":
                account_id = await self.get_current_user_account_id()
            elif lowered == "unassigned":
                unassigned = True
            else:
                account_id = assignee.strip()

        query = build_jql(text, status, account_id, jql, unassigned=unassigned)
        if not query:
            raise ValueError("Provide at least one of text, status, assignee or jql")

        fields = preset_request_fields(preset)
        body: dict[str, Any] = {
            "jql": query,
            "maxResults": max(1, min(limit, 100)),
            "fields": fields if fields is not None else ["*all"],
        }
        if next_page_token:
            body["nextPageToken"] = next_page_token

        logger.debug(f"Searching issues with JQL: {query}")
        # Read-only POST.
        response = await self.request(
            "POST", "/rest/api/3/search/jql", json=body, idempotent=True
        )
        response = response or {}
        return {
            "jql": query,
            "issues": response.get("issues", []),
            "nextPageToken": response.get("nextPageToken"),
            "isLast": response.get("isLast", response.get("nextPageToken") is None),
        }
