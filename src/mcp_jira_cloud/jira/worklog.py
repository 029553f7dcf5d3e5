"""Module for Jira worklog operations."""

import logging
from datetime import datetime, timezone
from typing import Any

from ..models.jira.adf import as_adf, to_text
from .client import JiraClient

logger = logging.getLogger("mcp-jira-cloud.jira.worklog")


def format_started(started: str) -> str:
    """
    Convert an ISO 8601 timestamp to the form the worklog API accepts.

    Naive timestamps are taken as UTC.

    Raises:
        ValueError: If the value is not an ISO 8601 timestamp
    """
    value = started.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(
            f"Invalid started timestamp '{started}', expected ISO 8601"
        ) from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + moment.strftime("%z")


class WorklogMixin(JiraClient):
    """Mixin for Jira worklog operations."""

    async def add_worklog(
        self,
        issue_key: str,
        time_spent: str,
        started: str | None = None,
        comment: str | None = None,
    ) -> dict[str, Any]:
        """
        Log time spent on an issue.

        Args:
            issue_key: The issue key
            time_spent: Jira duration, e.g. "1h 30m"
            started: ISO 8601 start time (defaults to now on the Jira side)
            comment: Optional worklog comment

        Returns:
            The created worklog
        """
        data: dict[str, Any] = {"timeSpent": time_spent}
        if started:
            data["started"] = format_started(started)
        if comment:
            data["comment"] = as_adf(comment)
        result = await self.request(
            "POST", f"/rest/api/3/issue/{issue_key}/worklog", json=data
        )
        result = result or {}
        logger.info(f"Logged {time_spent} on {issue_key}")
        return {
            "id": result.get("id"),
            "timeSpent": result.get("timeSpent", time_spent),
            "timeSpentSeconds": result.get("timeSpentSeconds"),
            "started": result.get("started"),
            "author": (result.get("author") or {}).get("displayName"),
            "comment": to_text(result.get("comment")),
        }
