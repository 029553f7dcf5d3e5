"""Module for Jira boards and sprints operations."""

import logging
from typing import Any

from ..models.jira import BulkOperationResult, JiraBoard, JiraSprint
from .client import JiraClient
from .projection import FilterPreset, preset_request_fields
from .utils import run_consolidated

logger = logging.getLogger("mcp-jira-cloud.jira.sprints")

SPRINT_NAME_MAX_LENGTH = 30


def _check_sprint_name(name: str) -> None:
    if not name.strip():
        raise ValueError("Sprint name cannot be empty")
    if len(name) > SPRINT_NAME_MAX_LENGTH:
        raise ValueError(
            f"Sprint name must be {SPRINT_NAME_MAX_LENGTH} characters or less "
            f"(got {len(name)} characters)"
        )


class SprintsMixin(JiraClient):
    """Mixin for Jira boards and sprints operations."""

    async def get_boards(
        self, board_name: str | None = None, project_key: str | None = None
    ) -> list[JiraBoard]:
        params: dict[str, Any] = {}
        if board_name:
            params["name"] = board_name
        if project_key:
            params["projectKeyOrId"] = project_key
        response = await self.request("GET", "/rest/agile/1.0/board", params=params)
        return [JiraBoard.from_api_response(b) for b in (response or {}).get("values", [])]

    async def find_board_id(
        self,
        board_id: int | None = None,
        board_name: str | None = None,
        project_key: str | None = None,
    ) -> int:
        """
        Pick a board by ID, name or project.

        Raises:
            ValueError: If no criterion was given or no board matches
        """
        if board_id is not None:
            return board_id
        if not (board_name or project_key):
            raise ValueError("Provide board_id, board_name or project_key")
        boards = await self.get_boards(board_name=board_name, project_key=project_key)
        if not boards or boards[0].id is None:
            raise ValueError(
                f"Board not found (name={board_name!r}, project={project_key!r})"
            )
        if len(boards) > 1:
            logger.info(
                f"{len(boards)} boards matched; using {boards[0].name} ({boards[0].id})"
            )
        return boards[0].id

    async def get_board_sprints(
        self,
        board_id: int,
        state: str | None = None,
        start: int = 0,
        limit: int = 50,
    ) -> list[JiraSprint]:
        """
        Get sprints of a board.

        Args:
            board_id: Board ID
            state: Sprint state (active, future, closed); all states when None
            start: Start index
            limit: Maximum number of sprints to return

        Returns:
            List of sprints
        """
        params: dict[str, Any] = {"startAt": start, "maxResults": limit}
        if state:
            params["state"] = state
        response = await self.request(
            "GET", f"/rest/agile/1.0/board/{board_id}/sprint", params=params
        )
        return [
            JiraSprint.from_api_response(s, board_id=board_id)
            for s in (response or {}).get("values", [])
        ]

    async def get_board_backlog(
        self,
        board_id: int,
        limit: int = 50,
        preset: FilterPreset | str = FilterPreset.BASIC,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"maxResults": limit}
        fields = preset_request_fields(preset)
        if fields is not None:
            params["fields"] = ",".join(fields)
        response = await self.request(
            "GET", f"/rest/agile/1.0/board/{board_id}/backlog", params=params
        )
        return (response or {}).get("issues", [])

    async def rank_issues(
        self,
        issue_keys: list[str],
        rank_after: str | None = None,
        rank_before: str | None = None,
    ) -> Any:
        """
        Move issues before or after another issue in the board ranking.

        Raises:
            ValueError: Unless exactly one of rank_after/rank_before is given
        """
        if bool(rank_after) == bool(rank_before):
            raise ValueError("Provide exactly one of rank_after or rank_before")
        data: dict[str, Any] = {"issues": issue_keys}
        if rank_after:
            data["rankAfterIssue"] = rank_after
        else:
            data["rankBeforeIssue"] = rank_before
        return await self.request("PUT", "/rest/agile/1.0/issue/rank", json=data)

    async def create_sprint(
        self,
        board_id: int,
        name: str,
        start_date: str | None = None,
        end_date: str | None = None,
        goal: str | None = None,
    ) -> JiraSprint:
        """
        Create a future sprint on a board.

        Raises:
            ValueError: If the name is empty or too long
        """
        _check_sprint_name(name)
        data: dict[str, Any] = {"name": name, "originBoardId": board_id}
        if start_date:
            data["startDate"] = start_date
        if end_date:
            data["endDate"] = end_date
        if goal:
            data["goal"] = goal
        created = await self.request("POST", "/rest/agile/1.0/sprint", json=data)
        return JiraSprint.from_api_response(created or {}, board_id=board_id)

    async def update_sprint(
        self,
        sprint_id: int,
        name: str | None = None,
        state: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        goal: str | None = None,
    ) -> JiraSprint:
        """
        Update a sprint, keeping current values for anything not given.

        Returns:
            The updated sprint
        """
        if name is not None:
            _check_sprint_name(name)
        current = await self.request("GET", f"/rest/agile/1.0/sprint/{sprint_id}") or {}

        data: dict[str, Any] = {
            "name": name if name is not None else current.get("name"),
            "state": state or current.get("state"),
        }
        for key, value in (
            ("startDate", start_date),
            ("endDate", end_date),
            ("goal", goal),
        ):
            if value is not None:
                data[key] = value
            elif current.get(key):
                data[key] = current[key]

        if data["state"] == "active" and not (data.get("startDate") and data.get("endDate")):
            raise ValueError("Starting a sprint requires start_date and end_date")

        updated = await self.request(
            "PUT", f"/rest/agile/1.0/sprint/{sprint_id}", json=data
        )
        return JiraSprint.from_api_response(updated or {**current, **data})

    async def add_issues_to_sprint(
        self, sprint_id: int, issue_keys: list[str]
    ) -> BulkOperationResult:
        """Move issues into a sprint one by one; each move succeeds or fails alone."""

        async def move(issue_key: str) -> None:
            # Re-adding an issue to its current sprint is a no-op.
            await self.request(
                "POST",
                f"/rest/agile/1.0/sprint/{sprint_id}/issue",
                json={"issues": [issue_key]},
                idempotent=True,
            )

        return await run_consolidated(
            "sprint_add_issues",
            issue_keys,
            move,
            max_concurrency=self.config.bulk_concurrency,
        )

    async def move_issues_to_backlog(self, issue_keys: list[str]) -> BulkOperationResult:
        async def move(issue_key: str) -> None:
            await self.request(
                "POST",
                "/rest/agile/1.0/backlog/issue",
                json={"issues": [issue_key]},
                idempotent=True,
            )

        return await run_consolidated(
            "sprint_move_to_backlog",
            issue_keys,
            move,
            max_concurrency=self.config.bulk_concurrency,
        )

    async def delete_sprint(self, sprint_id: int) -> None:
        await self.request("DELETE", f"/rest/agile/1.0/sprint/{sprint_id}")
        logger.info(f"Deleted sprint {sprint_id}")
