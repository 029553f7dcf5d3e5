"""
Jira agile board and sprint models.
"""

from typing import Any

from ..base import ApiModel


class JiraBoard(ApiModel):
    """
    Model representing a Jira agile board.
    """

    id: int | None = None
    name: str | None = None
    type: str | None = None
    project_key: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any], **kwargs: Any) -> "JiraBoard":
        if not data:
            return cls()

        location = data.get("location") or {}
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            type=data.get("type"),
            project_key=location.get("projectKey"),
        )

    def to_simplified_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "projectKey": self.project_key,
        }


class JiraSprint(ApiModel):
    """
    Model representing a Jira sprint.
    """

    id: int | None = None
    name: str | None = None
    state: str | None = None
    goal: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    complete_date: str | None = None
    board_id: int | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any], **kwargs: Any) -> "JiraSprint":
        """
        Create a JiraSprint from a Jira API response.
        """
        if not data:
            return cls()

        return cls(
            id=data.get("id"),
            name=data.get("name"),
            state=data.get("state"),
            goal=data.get("goal") or None,
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            complete_date=data.get("completeDate"),
            board_id=data.get("originBoardId", kwargs.get("board_id")),
        )

    def to_simplified_dict(self) -> dict[str, Any]:
        """Convert to simplified dictionary for API response."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "boardId": self.board_id,
        }
        if self.goal:
            result["goal"] = self.goal
        for key, value in (
            ("startDate", self.start_date),
            ("endDate", self.end_date),
            ("completeDate", self.complete_date),
        ):
            if value:
                result[key] = value
        return result
